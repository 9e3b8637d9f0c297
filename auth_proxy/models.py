from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from auth_proxy.vars import CLIENT_ADDRESS_HEADER

# Ordered header multimap: a name may repeat, order is preserved
HeaderList = List[Tuple[str, str]]


@dataclass(frozen=True)
class ProxyConfig:
    """Process-wide proxy settings, built once at startup and never mutated."""

    username: str
    password: str
    upstream_base: str
    client_address_header: str = CLIENT_ADDRESS_HEADER


@dataclass
class InboundRequest:
    method: str
    # Raw path and query exactly as received, never unescaped
    target: str
    headers: HeaderList = field(default_factory=list)
    # host:port of the peer, IPv6 hosts in brackets; None when unknown
    remote_addr: Optional[str] = None


@dataclass
class OutboundRequest:
    method: str
    url: str
    headers: HeaderList = field(default_factory=list)

    def get_all(self, name: str) -> List[str]:
        """Return every value of header ``name`` (case-insensitive), in order."""
        name = name.lower()
        return [v for k, v in self.headers if k.lower() == name]


@dataclass
class UpstreamResponse:
    status_code: int
    headers: HeaderList = field(default_factory=list)
    body: bytes = b""
