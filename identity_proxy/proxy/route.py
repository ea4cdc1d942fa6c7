from fastapi import APIRouter, Request
from fastapi.responses import Response

router = APIRouter()

# HTTP semantics methods plus the WebDAV extensions; CONNECT is not proxied
PROXY_METHODS = [
    "GET",
    "POST",
    "PUT",
    "DELETE",
    "PATCH",
    "HEAD",
    "OPTIONS",
    "TRACE",
    "PROPFIND",
    "PROPPATCH",
    "MKCOL",
    "COPY",
    "MOVE",
    "LOCK",
    "UNLOCK",
    "REPORT",
    "SEARCH",
]


@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy_all(request: Request, path: str) -> Response:
    """
    Catch-all route that hands every request to the configured proxy handler.
    Methods outside PROXY_METHODS are answered locally with 405.
    """
    return await request.app.state.proxy_handler.handle(request)
