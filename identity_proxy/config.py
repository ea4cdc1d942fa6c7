"""Process-wide proxy configuration.

The configuration is read from the environment exactly once, at startup, and
handed to :func:`identity_proxy.server.create_app`. Request handling code only
ever sees the resulting :class:`ProxyConfig`.
"""

import os
from dataclasses import dataclass
from typing import List, Mapping, Optional
from urllib.parse import urlsplit

DEFAULT_PORT = 8080
DEFAULT_TIMEOUT = 300  # seconds, 5 minutes


class ConfigurationError(ValueError):
    """Raised when the environment does not describe a usable proxy."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid proxy configuration: " + "; ".join(problems))


@dataclass(frozen=True)
class ProxyConfig:
    public_origin: str
    upstream_host: str
    upstream_api_key: str
    port: int = DEFAULT_PORT
    timeout: int = DEFAULT_TIMEOUT

    @property
    def upstream_origin(self) -> str:
        return f"https://{self.upstream_host}"


def _parse_positive_int(
    env: Mapping[str, str], name: str, default: int, problems: List[str]
) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        problems.append(f"{name} must be an integer, got {raw!r}")
        return default
    if value <= 0:
        problems.append(f"{name} must be positive, got {value}")
    return value


def validate_config(config: ProxyConfig) -> List[str]:
    """Return a list of human readable problems, empty when the config is usable."""
    problems = []

    if not config.public_origin:
        problems.append("APPLICATION_ORIGIN is not set")
    else:
        parsed = urlsplit(config.public_origin)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            problems.append(
                f"APPLICATION_ORIGIN must be an absolute http(s) URL, got {config.public_origin!r}"
            )

    if not config.upstream_host:
        problems.append("ORY_PROJECT_HOST is not set")
    elif "://" in config.upstream_host or "/" in config.upstream_host:
        problems.append(
            f"ORY_PROJECT_HOST must be a bare hostname without scheme or path, got {config.upstream_host!r}"
        )

    if not config.upstream_api_key:
        problems.append("ORY_API_KEY is not set")

    return problems


def load_config(env: Optional[Mapping[str, str]] = None) -> ProxyConfig:
    """Build and validate a :class:`ProxyConfig` from environment variables.

    Raises:
        ConfigurationError: listing every problem found, so a misconfigured
            deployment fails before binding its port instead of proxying to
            an empty host.
    """
    if env is None:
        env = os.environ

    problems: List[str] = []
    port = _parse_positive_int(env, "PORT", DEFAULT_PORT, problems)
    timeout = _parse_positive_int(env, "PROXY_TIMEOUT", DEFAULT_TIMEOUT, problems)

    config = ProxyConfig(
        public_origin=env.get("APPLICATION_ORIGIN", "").strip().rstrip("/"),
        upstream_host=env.get("ORY_PROJECT_HOST", "").strip(),
        upstream_api_key=env.get("ORY_API_KEY", "").strip(),
        port=port,
        timeout=timeout,
    )
    problems.extend(validate_config(config))
    if problems:
        raise ConfigurationError(problems)
    return config
