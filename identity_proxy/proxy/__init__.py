from .handler import ProxyHandler
from .request_rewriter import RequestRewriter
from .response_rewriter import ResponseRewriter
from .upstream import UpstreamInvoker

__all__ = [
    "ProxyHandler",
    "RequestRewriter",
    "ResponseRewriter",
    "UpstreamInvoker",
]
