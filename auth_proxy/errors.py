"""
Error taxonomy for the proxy.

Configuration errors are fatal at startup. Every other error is local to the
request that raised it and is mapped to an HTTP status by the proxy route.
"""

from typing import Optional


class ProxyError(Exception):
    """Base class for all proxy errors."""


class ConfigurationError(ProxyError):
    """A required setting is missing; the process must not start."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "Missing required configuration: " + ", ".join(sorted(missing))
        )


class MalformedRequestError(ProxyError):
    """The inbound request cannot be turned into a valid outbound request."""


class UpstreamUnavailableError(ProxyError):
    """The outbound call could not be completed (connect, DNS, TLS, timeout)."""

    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(f"Request to {url} failed: {cause}")


class BodyReadError(ProxyError):
    """
    The upstream body could not be fully read after headers were received.

    Carries whatever was received so the caller can still be answered with the
    upstream status, headers and the partial body.
    """

    def __init__(self, partial, cause: Optional[Exception] = None):
        self.partial = partial
        self.cause = cause
        super().__init__(
            f"Upstream body read failed after {len(partial.body)} bytes: {cause}"
        )
