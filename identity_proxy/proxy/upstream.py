from typing import Optional

import httpx


class UpstreamInvoker:
    """Sends rewritten requests to the upstream identity service.

    Redirects are never followed: a 3xx has to reach the response rewriter
    with its ``Location`` intact so the upstream origin can be masked.
    Responses are opened in streaming mode; the caller owns closing them.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 300):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout), follow_redirects=False
        )

    async def send(self, request: httpx.Request) -> httpx.Response:
        return await self.client.send(request, stream=True, follow_redirects=False)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
