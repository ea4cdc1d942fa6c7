import logging
from typing import AbstractSet, List, Tuple

import httpx
from starlette.background import BackgroundTask
from starlette.datastructures import Headers
from starlette.responses import Response, StreamingResponse

from identity_proxy.proxy.cookies import CookieDomainRewriter
from identity_proxy.proxy.request_rewriter import HOP_BY_HOP_HEADERS

logger = logging.getLogger("uvicorn.error")

# Stale once the body has been decoded and rewritten
RECOMPUTED_BODY_HEADERS = {"content-encoding", "content-length"}

NO_BODY_STATUS_CODES = {204, 304}


def is_text_content(content_type: str) -> bool:
    return content_type.strip().lower().startswith("text/")


def has_body(response: httpx.Response) -> bool:
    if response.status_code < 200 or response.status_code in NO_BODY_STATUS_CODES:
        return False
    return response.request.method != "HEAD"


class ResponseRewriter:
    """Masks the upstream origin in responses before they reach the browser.

    Three independent rewrites are applied:

    - text bodies: every ``https://<upstream_host>`` becomes the public origin
    - ``Set-Cookie``: upstream host and registrable domain become the public ones
    - ``Location``: every ``https://<upstream_host>`` becomes the public origin

    Non-text bodies are streamed through untouched.
    """

    def __init__(self, upstream_host: str, public_origin: str):
        self.upstream_origin = f"https://{upstream_host}"
        self.public_origin = public_origin
        self.cookie_rewriter = CookieDomainRewriter(self.upstream_origin, public_origin)

    def rewrite_text(self, text: str) -> str:
        return text.replace(self.upstream_origin, self.public_origin)

    def rewrite_location(self, location: str) -> str:
        return location.replace(self.upstream_origin, self.public_origin)

    def rewrite_headers(
        self, headers: httpx.Headers, drop: AbstractSet[str] = frozenset()
    ) -> List[Tuple[str, str]]:
        """
        Copy upstream headers for the outbound response.
        Hop-by-hop headers and ``drop`` are skipped, Set-Cookie entries are
        re-emitted one per cookie at the position of the first original one.
        """
        rewritten = []
        cookies_emitted = False
        for name, value in headers.multi_items():
            name_lower = name.lower()
            if name_lower in HOP_BY_HOP_HEADERS or name_lower in drop:
                continue

            if name_lower == "set-cookie":
                if not cookies_emitted:
                    cookies = self.cookie_rewriter.rewrite(headers.get_list("set-cookie"))
                    rewritten.extend(("set-cookie", cookie) for cookie in cookies)
                    cookies_emitted = True
                continue

            if name_lower == "location":
                value = self.rewrite_location(value)

            rewritten.append((name_lower, value))
        return rewritten

    async def rewrite(self, response: httpx.Response) -> Response:
        """
        Build the outbound response from a streaming upstream response.

        The upstream response is closed once its body has been consumed, either
        here for buffered text bodies or after the stream is drained.
        """
        content_type = response.headers.get("content-type")

        if not has_body(response):
            await response.aclose()
            return Response(
                status_code=response.status_code,
                headers=_starlette_headers(self.rewrite_headers(response.headers)),
            )

        if content_type is None or not is_text_content(content_type):
            return StreamingResponse(
                response.aiter_raw(),
                status_code=response.status_code,
                headers=_starlette_headers(self.rewrite_headers(response.headers)),
                background=BackgroundTask(response.aclose),
            )

        try:
            await response.aread()
        finally:
            await response.aclose()

        text = response.text
        if self.upstream_origin in text:
            body = self.rewrite_text(text).encode(response.encoding or "utf-8", errors="replace")
            logger.debug(
                f"Rewrote {content_type} body: {len(response.content)} -> {len(body)} bytes"
            )
        else:
            body = response.content
        return Response(
            content=body,
            status_code=response.status_code,
            headers=_starlette_headers(
                self.rewrite_headers(response.headers, drop=RECOMPUTED_BODY_HEADERS)
            ),
        )


def _starlette_headers(items: List[Tuple[str, str]]) -> Headers:
    # Raw form keeps repeated names such as Set-Cookie
    return Headers(raw=[(k.encode("latin-1"), v.encode("latin-1")) for k, v in items])
