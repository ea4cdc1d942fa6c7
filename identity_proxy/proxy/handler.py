import logging

import httpx
from fastapi import Request
from fastapi.responses import RedirectResponse, Response
from opentelemetry import trace

from identity_proxy.config import ProxyConfig
from identity_proxy.proxy.request_rewriter import RequestRewriter
from identity_proxy.proxy.response_rewriter import ResponseRewriter
from identity_proxy.proxy.upstream import UpstreamInvoker
from identity_proxy.utils.traced_requests import traced_request
from identity_proxy.vars import ROOT_REDIRECT_PATH

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")


class ProxyHandler:
    """
    Entry point for every inbound request.

    Requests for ``/`` are redirected to the hosted UI on the public origin.
    Everything else is rewritten, sent upstream and rewritten back. Upstream
    transport errors are logged and re-raised for the application to turn
    into a gateway error.
    """

    def __init__(self, config: ProxyConfig, invoker: UpstreamInvoker):
        self.config = config
        self.invoker = invoker
        self.request_rewriter = RequestRewriter(config)
        self.response_rewriter = ResponseRewriter(config.upstream_host, config.public_origin)

    def root_redirect(self) -> Response:
        location = f"{self.config.public_origin}{ROOT_REDIRECT_PATH}"
        logger.info(f"Redirecting / -> {location}")
        return RedirectResponse(url=location, status_code=303)

    async def handle(self, request: Request) -> Response:
        if request.url.path == "/":
            return self.root_redirect()
        return await self.forward(request)

    async def forward(self, request: Request) -> Response:
        body = await request.body()
        upstream_request = self.request_rewriter.rewrite(request, body)
        target_url = str(upstream_request.url)

        with traced_request(
            tracer,
            "proxy_request",
            request.method,
            request.url.path,
            f"Proxying {request.method} {request.url.path} -> {target_url}",
            extra_attrs={"proxy.target_url": target_url},
        ) as span:
            try:
                upstream_response = await self.invoker.send(upstream_request)
            except httpx.TransportError as e:
                logger.error(f"Upstream request to {target_url} failed: {e!r}")
                span.set_attribute("proxy.error", type(e).__name__)
                raise

            span.set_attribute("proxy.status_code", upstream_response.status_code)
            response = await self.response_rewriter.rewrite(upstream_response)
            location = response.headers.get("location")
            if location:
                span.set_attribute("proxy.rewritten_location", location)
            return response
