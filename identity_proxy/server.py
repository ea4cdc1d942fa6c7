import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import CollectorRegistry, Info
from prometheus_fastapi_instrumentator import Instrumentator

from identity_proxy.config import ProxyConfig, load_config
from identity_proxy.proxy import ProxyHandler, UpstreamInvoker
from identity_proxy.proxy.route import router
from identity_proxy.utils import secret_fingerprint
from identity_proxy.vars import METRICS_PATH, OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME

logger = logging.getLogger("uvicorn.error")

_tracing_configured = False


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out noisy ASGI body spans from streaming responses.
    Every proxied chunk would otherwise show up as its own tiny span.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


def configure_tracing() -> None:
    """Install the process-wide tracer provider, once."""
    global _tracing_configured
    if _tracing_configured:
        return

    tracer_provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    if OTLP_ENDPOINT:
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=OTLP_HEADERS or None,
        )
        tracer_provider.add_span_processor(
            BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
        )
        logger.info(f"Exporting traces to {OTLP_ENDPOINT}")
    trace.set_tracer_provider(tracer_provider)
    _tracing_configured = True


def configure_metrics(app: FastAPI) -> None:
    if not METRICS_PATH:
        logger.info("Metrics endpoint disabled")
        return
    registry = CollectorRegistry()
    Instrumentator(registry=registry).instrument(app).expose(
        app, endpoint=METRICS_PATH, include_in_schema=False
    )
    app_info = Info("fastapi_app_info", "Application Info", registry=registry)
    app_info.info({"app_name": SERVICE_NAME})


async def upstream_timeout_handler(request: Request, exc: httpx.TimeoutException):
    return JSONResponse(status_code=504, content={"detail": "Gateway timeout"})


async def upstream_unavailable_handler(request: Request, exc: httpx.TransportError):
    return JSONResponse(
        status_code=502,
        content={"detail": "Bad gateway - cannot reach identity service"},
    )


def create_app(
    config: Optional[ProxyConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        config: Proxy configuration; loaded and validated from the environment
            when omitted.
        client: HTTP client used for upstream calls. When omitted the app
            creates its own and closes it on shutdown.
    """
    if config is None:
        config = load_config()

    invoker = UpstreamInvoker(client, timeout=config.timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Proxying {config.public_origin} -> {config.upstream_origin} "
            f"(api key {secret_fingerprint(config.upstream_api_key)})"
        )
        try:
            yield
        finally:
            await invoker.aclose()

    configure_tracing()

    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config
    app.state.proxy_handler = ProxyHandler(config, invoker)

    app.add_exception_handler(httpx.TimeoutException, upstream_timeout_handler)
    app.add_exception_handler(httpx.TransportError, upstream_unavailable_handler)

    # Registered before the catch-all proxy route so it is not forwarded upstream
    configure_metrics(app)
    app.include_router(router)

    FastAPIInstrumentor.instrument_app(app)
    return app
