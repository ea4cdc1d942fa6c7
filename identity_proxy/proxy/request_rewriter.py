from urllib.parse import quote

import httpx
from fastapi import Request

from identity_proxy.config import ProxyConfig


# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Derived by the HTTP client from the rewritten URL and body
CLIENT_MANAGED_HEADERS = {"host", "content-length"}

NO_CUSTOM_DOMAIN_REDIRECT_HEADER = "Ory-No-Custom-Domain-Redirect"
BASE_URL_REWRITE_HEADER = "Ory-Base-URL-Rewrite"
BASE_URL_REWRITE_TOKEN_HEADER = "Ory-Base-URL-Rewrite-Token"
NETWORK_INGRESS_HEADER = "Ory-Network-Ingress"


class RequestRewriter:
    """Turns an inbound request into the equivalent request to the upstream host."""

    def __init__(self, config: ProxyConfig):
        self.upstream_host = config.upstream_host
        self.control_headers = {
            NO_CUSTOM_DOMAIN_REDIRECT_HEADER: "true",
            BASE_URL_REWRITE_HEADER: config.public_origin,
            BASE_URL_REWRITE_TOKEN_HEADER: config.upstream_api_key,
            NETWORK_INGRESS_HEADER: "T",
        }

    def target_url(self, request: Request) -> httpx.URL:
        """The inbound request target on the upstream host, path and query byte for byte.

        Built from the ASGI ``raw_path`` and ``query_string`` rather than
        ``request.url``, whose path is already percent-decoded.
        """
        host, _, port = self.upstream_host.partition(":")
        raw_path = request.scope.get("raw_path") or quote(request.url.path).encode("ascii")
        target = raw_path.split(b"?", 1)[0]
        query = request.scope.get("query_string", b"")
        if query:
            target += b"?" + query
        return httpx.URL(
            scheme="https", host=host, port=int(port) if port else None, raw_path=target
        )

    def prepare_headers(self, request: Request) -> httpx.Headers:
        headers = httpx.Headers(
            [
                (name, value)
                for name, value in request.headers.items()
                if name.lower() not in HOP_BY_HOP_HEADERS
                and name.lower() not in CLIENT_MANAGED_HEADERS
            ]
        )

        # Overwrite, never merge, whatever the caller sent under these names
        for name, value in self.control_headers.items():
            headers[name] = value
        return headers

    def rewrite(self, request: Request, body: bytes) -> httpx.Request:
        return httpx.Request(
            method=request.method,
            url=self.target_url(request),
            headers=self.prepare_headers(request),
            content=body,
        )
