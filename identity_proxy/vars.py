import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "identity-proxy")
HOST = os.environ.get("HOST", "0.0.0.0")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

# Empty disables the Prometheus endpoint. Every other path is proxied.
METRICS_PATH = os.environ.get("METRICS_PATH", "/metrics")

ROOT_REDIRECT_PATH = "/ui"
