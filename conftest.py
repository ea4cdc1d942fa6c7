import pytest

from identity_proxy.config import ProxyConfig
from identity_proxy.utils_tests.upstream_mock import (
    PUBLIC_ORIGIN,
    UPSTREAM_HOST,
    RecordingUpstream,
    upstream_response,
)


@pytest.fixture
def proxy_config():
    """Configuration shared by the proxy tests."""
    return ProxyConfig(
        public_origin=PUBLIC_ORIGIN,
        upstream_host=UPSTREAM_HOST,
        upstream_api_key="ory_pat_test_key",
    )


@pytest.fixture
def make_upstream_response():
    return upstream_response


@pytest.fixture
def recording_upstream():
    return RecordingUpstream()
