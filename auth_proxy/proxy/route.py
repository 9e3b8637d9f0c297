import logging
from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from opentelemetry import trace

from auth_proxy.errors import (
    BodyReadError,
    MalformedRequestError,
    UpstreamUnavailableError,
)
from auth_proxy.models import InboundRequest, ProxyConfig
from auth_proxy.proxy.relay import build_response, relay
from auth_proxy.proxy.translator import client_host, translate
from auth_proxy.utils import redact_headers
from auth_proxy.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from auth_proxy.utils.traced_requests import traced_request

router = APIRouter()
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

PROXY_METHODS = [
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
]


def format_peer(host: str, port: Optional[int]) -> str:
    """host:port in the form a server reports its peer, IPv6 in brackets."""
    if ":" in host:
        host = f"[{host}]"
    return f"{host}:{port}" if port is not None else host


def inbound_from_request(request: Request) -> InboundRequest:
    """Capture the raw request-target, headers and peer of an ASGI request."""
    scope = request.scope
    raw_path = scope.get("raw_path") or request.url.path.encode("utf-8")
    target = raw_path.split(b"?", 1)[0].decode("latin-1")
    query_string = scope.get("query_string", b"")
    if query_string:
        target = f"{target}?{query_string.decode('latin-1')}"

    headers = [
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in request.headers.raw
    ]
    client = request.client
    remote_addr = format_peer(client.host, client.port) if client else None
    return InboundRequest(
        method=request.method, target=target, headers=headers, remote_addr=remote_addr
    )


async def forward_to_upstream(request: Request) -> Response:
    """
    Forward one inbound request to the upstream origin with the configured
    credential and relay the answer.

    - 400 when the request cannot be translated
    - 502 when the upstream cannot be reached
    - upstream status, headers and partial body when the body read fails
    """
    config: ProxyConfig = request.app.state.proxy_config
    transport: Optional[httpx.AsyncBaseTransport] = request.app.state.upstream_transport
    inbound = inbound_from_request(request)
    client_address = client_host(inbound.remote_addr)

    with traced_request(
        tracer,
        operation="proxy_request",
        start_message=f"[Proxy] {inbound.method} {inbound.target} from {client_address}",
        extra_attrs={
            "proxy.method": inbound.method,
            "proxy.client_address": client_address,
        },
    ) as span:
        try:
            outbound = translate(inbound, config)
        except MalformedRequestError as e:
            log_exception_with_details(logger, "[Proxy]", e, logging.WARNING)
            span.set_attribute("proxy.error", "malformed_request")
            raise HTTPException(status_code=400, detail="Bad Request")

        span.set_attribute("proxy.target_url", outbound.url)
        logger.debug(
            f"[Proxy] Requesting URL ({outbound.url}) for client ({inbound.remote_addr}) "
            f"with headers ({redact_headers(outbound.headers)})"
        )

        try:
            async with httpx.AsyncClient(transport=transport) as client:
                upstream = await relay(outbound, client)
        except UpstreamUnavailableError as e:
            log_exception_with_details(logger, "[Proxy]", e)
            span.set_attribute("proxy.error", format_exception_message(e.cause))
            raise HTTPException(status_code=502, detail="Bad Gateway")
        except BodyReadError as e:
            log_exception_with_details(logger, "[Proxy]", e)
            span.set_attribute("proxy.error", "body_read_failed")
            upstream = e.partial

        span.set_attribute("proxy.status_code", upstream.status_code)
        return build_response(upstream, outbound.method)


@router.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy_all(request: Request, path: str):
    """Catch-all route: every method and path goes to the upstream origin."""
    return await forward_to_upstream(request)
