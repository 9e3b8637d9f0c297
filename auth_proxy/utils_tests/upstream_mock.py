from typing import Callable, List, Optional

import httpx


class ChunkStream(httpx.AsyncByteStream):
    """Upstream body that yields ``chunks`` and optionally fails afterwards."""

    def __init__(self, chunks: List[bytes], fail_with: Optional[Exception] = None):
        self.chunks = chunks
        self.fail_with = fail_with
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.fail_with is not None:
            raise self.fail_with

    async def aclose(self):
        self.closed = True


def upstream_response(
    status_code: int = 200,
    headers=None,
    body: bytes = b"",
    fail_with: Optional[Exception] = None,
) -> httpx.Response:
    """
    Build a response the way a network transport hands it over: headers
    received, body still unread.
    """
    return httpx.Response(
        status_code,
        headers=headers,
        stream=ChunkStream([body] if body else [], fail_with=fail_with),
    )


class RecordingUpstream:
    """MockTransport handler that records requests and answers with ``respond``."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []
        self.responses: List[httpx.Response] = []
        self.respond = respond

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.respond(request)
        self.responses.append(response)
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def failing_upstream(error: Exception) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise error

    return httpx.MockTransport(handler)
