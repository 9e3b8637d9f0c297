"""
Request translation: inbound request + ProxyConfig -> outbound request.

The outbound request keeps the inbound method, targets the upstream origin with
the request-target appended verbatim, carries every inbound header, and always
has the proxy's own Basic credential and the client-address header.
"""

import base64
import re
from typing import Optional

import httpx

from auth_proxy.errors import MalformedRequestError
from auth_proxy.models import HeaderList, InboundRequest, OutboundRequest, ProxyConfig

# RFC 9110 token characters
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

# Describe the inbound connection or body framing; the outbound request has no
# body and its Host comes from the upstream URL.
CONNECTION_HEADERS = {"host", "content-length", "transfer-encoding"}

UNKNOWN_CLIENT = "unknown"


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def client_host(remote_addr: Optional[str]) -> str:
    """
    Host portion of a peer address, port stripped.

    Accepts "host:port", "[v6]:port", a bare host, or a bare IPv6 address.
    """
    if not remote_addr:
        return UNKNOWN_CLIENT
    if remote_addr.startswith("["):
        end = remote_addr.find("]")
        if end != -1:
            return remote_addr[1:end]
        return remote_addr
    if remote_addr.count(":") == 1:
        return remote_addr.split(":", 1)[0]
    # Bare host or bare IPv6 address without a port
    return remote_addr


def build_target_url(upstream_base: str, target: str) -> str:
    """Join the upstream origin and the request-target without re-encoding."""
    url = f"{upstream_base}{target}"
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise MalformedRequestError(f"Cannot build upstream URL from {url!r}: {e}")
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise MalformedRequestError(f"Upstream URL {url!r} is not an absolute http(s) URL")
    return url


def copy_headers(source: HeaderList, destination: HeaderList) -> None:
    """Append every header from ``source`` to ``destination``; nothing is overwritten."""
    for name, value in source:
        if name.lower() in CONNECTION_HEADERS:
            continue
        destination.append((name, value))


def set_header(headers: HeaderList, name: str, value: str) -> None:
    """Replace all values of ``name`` (case-insensitive) with a single value."""
    lowered = name.lower()
    headers[:] = [(k, v) for k, v in headers if k.lower() != lowered]
    headers.append((name, value))


def translate(inbound: InboundRequest, config: ProxyConfig) -> OutboundRequest:
    if not inbound.method or not _METHOD_RE.fullmatch(inbound.method):
        raise MalformedRequestError(f"Invalid request method {inbound.method!r}")

    url = build_target_url(config.upstream_base, inbound.target)

    headers: HeaderList = []
    copy_headers(inbound.headers, headers)
    # Credentials are injected after the copy so the proxy's always win
    set_header(
        headers, "Authorization", basic_auth_header(config.username, config.password)
    )
    set_header(headers, config.client_address_header, client_host(inbound.remote_addr))

    return OutboundRequest(method=inbound.method, url=url, headers=headers)
