from typing import Callable, List, Optional

import httpx

UPSTREAM_HOST = "upstream.example.com"
PUBLIC_ORIGIN = "https://app.example.org"


def upstream_response(
    status_code: int = 200,
    headers=None,
    body: bytes = b"",
    method: str = "GET",
    url: str = f"https://{UPSTREAM_HOST}/test",
) -> httpx.Response:
    """
    Build an unread httpx response as the client returns it with ``stream=True``.
    Passing ``stream=`` keeps httpx from pre-loading the body, so both
    ``aiter_raw`` and ``aread`` behave like they do on the wire.
    """
    return httpx.Response(
        status_code,
        headers=headers,
        stream=httpx.ByteStream(body),
        request=httpx.Request(method, url),
    )


class RecordingUpstream:
    """Upstream stand-in for httpx.MockTransport that records every request it sees."""

    def __init__(self, respond: Optional[Callable[[httpx.Request], httpx.Response]] = None):
        self.requests: List[httpx.Request] = []
        self.respond = respond or (
            lambda request: httpx.Response(
                200,
                headers={"content-type": "text/plain"},
                stream=httpx.ByteStream(b"ok"),
            )
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))
