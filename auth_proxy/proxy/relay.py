"""
Response relay: send the outbound request once and turn the upstream answer
into a response for the original caller.
"""

from typing import List, Tuple

import httpx
from fastapi.responses import Response

from auth_proxy.errors import BodyReadError, UpstreamUnavailableError
from auth_proxy.models import OutboundRequest, UpstreamResponse

# Framing headers recomputed by the serving side for the buffered body
FRAMING_HEADERS = {"content-length", "transfer-encoding"}


def to_httpx_request(outbound: OutboundRequest) -> httpx.Request:
    # Built directly rather than through client.build_request so that no client
    # default headers (User-Agent, Accept-Encoding, ...) are merged in.
    # Header text holds the raw bytes as latin-1, so obs-text goes out unchanged.
    headers = [
        (name.encode("latin-1"), value.encode("latin-1"))
        for name, value in outbound.headers
    ]
    return httpx.Request(outbound.method, outbound.url, headers=headers)


async def relay(outbound: OutboundRequest, client: httpx.AsyncClient) -> UpstreamResponse:
    """
    Execute ``outbound`` exactly once and buffer the whole upstream response.

    Raises UpstreamUnavailableError when no response was obtained, and
    BodyReadError (carrying the partial response) when the body could not be
    read to the end. The upstream response is closed on every path.
    """
    request = to_httpx_request(outbound)
    try:
        response = await client.send(request, stream=True, follow_redirects=False)
    except httpx.TransportError as e:
        raise UpstreamUnavailableError(outbound.url, e) from e

    headers = [
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in response.headers.raw
    ]
    body = bytearray()
    try:
        # Raw bytes: the caller gets the body exactly as the upstream encoded it
        async for chunk in response.aiter_raw():
            body.extend(chunk)
    except httpx.HTTPError as e:
        partial = UpstreamResponse(response.status_code, headers, bytes(body))
        raise BodyReadError(partial, e) from e
    finally:
        await response.aclose()

    return UpstreamResponse(response.status_code, headers, bytes(body))


def _keeps_upstream_length(method: str, status_code: int) -> bool:
    # Responses without a body whose Content-Length describes a body not sent
    return method == "HEAD" or status_code < 200 or status_code in (204, 304)


def build_response(upstream: UpstreamResponse, method: str) -> Response:
    """
    Assemble the caller's response: upstream headers first, then the status,
    then the body bytes verbatim.
    """
    raw_headers: List[Tuple[bytes, bytes]] = []
    keep_length = _keeps_upstream_length(method, upstream.status_code)
    for name, value in upstream.headers:
        lowered = name.lower()
        if lowered in FRAMING_HEADERS and not (
            lowered == "content-length" and keep_length
        ):
            continue
        raw_headers.append((lowered.encode("latin-1"), value.encode("latin-1")))
    if not keep_length:
        raw_headers.append((b"content-length", str(len(upstream.body)).encode("latin-1")))

    response = Response(content=upstream.body, status_code=upstream.status_code)
    response.raw_headers = raw_headers
    return response
