import pytest

from identity_proxy.config import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    ConfigurationError,
    ProxyConfig,
    load_config,
)

VALID_ENV = {
    "APPLICATION_ORIGIN": "https://app.example.org",
    "ORY_PROJECT_HOST": "upstream.example.com",
    "ORY_API_KEY": "ory_pat_secret",
}


def test_load_config_from_env():
    config = load_config({**VALID_ENV, "PORT": "9090", "PROXY_TIMEOUT": "30"})

    assert config == ProxyConfig(
        public_origin="https://app.example.org",
        upstream_host="upstream.example.com",
        upstream_api_key="ory_pat_secret",
        port=9090,
        timeout=30,
    )


def test_defaults_for_port_and_timeout():
    config = load_config(VALID_ENV)

    assert config.port == DEFAULT_PORT == 8080
    assert config.timeout == DEFAULT_TIMEOUT


def test_trailing_slash_stripped_from_origin():
    config = load_config({**VALID_ENV, "APPLICATION_ORIGIN": "https://app.example.org/"})

    assert config.public_origin == "https://app.example.org"


def test_upstream_origin():
    config = load_config(VALID_ENV)

    assert config.upstream_origin == "https://upstream.example.com"


def test_reads_process_environment(monkeypatch):
    for name, value in VALID_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("PORT", raising=False)

    config = load_config()

    assert config.upstream_host == "upstream.example.com"


def test_config_is_immutable():
    config = load_config(VALID_ENV)

    with pytest.raises(AttributeError):
        config.upstream_host = "elsewhere.example.com"


def test_empty_environment_reports_every_missing_value():
    with pytest.raises(ConfigurationError) as exc_info:
        load_config({})

    problems = exc_info.value.problems
    assert "APPLICATION_ORIGIN is not set" in problems
    assert "ORY_PROJECT_HOST is not set" in problems
    assert "ORY_API_KEY is not set" in problems


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"APPLICATION_ORIGIN": "app.example.org"}, "APPLICATION_ORIGIN must be an absolute"),
        ({"APPLICATION_ORIGIN": "ftp://app.example.org"}, "APPLICATION_ORIGIN must be an absolute"),
        ({"ORY_PROJECT_HOST": "https://upstream.example.com"}, "ORY_PROJECT_HOST must be a bare"),
        ({"ORY_PROJECT_HOST": "upstream.example.com/path"}, "ORY_PROJECT_HOST must be a bare"),
        ({"PORT": "eighty"}, "PORT must be an integer"),
        ({"PORT": "0"}, "PORT must be positive"),
        ({"PROXY_TIMEOUT": "-5"}, "PROXY_TIMEOUT must be positive"),
    ],
)
def test_invalid_values_rejected(overrides, expected):
    with pytest.raises(ConfigurationError) as exc_info:
        load_config({**VALID_ENV, **overrides})

    assert any(problem.startswith(expected) for problem in exc_info.value.problems)
    assert expected in str(exc_info.value)


def test_whitespace_only_values_count_as_missing():
    with pytest.raises(ConfigurationError) as exc_info:
        load_config({**VALID_ENV, "ORY_API_KEY": "   "})

    assert exc_info.value.problems == ["ORY_API_KEY is not set"]
