from unittest.mock import MagicMock, patch

from identity_proxy.utils import secret_fingerprint
from identity_proxy.utils.traced_requests import traced_request


def test_secret_fingerprint_empty():
    assert secret_fingerprint("") == "<empty>"
    assert secret_fingerprint(None) == "<empty>"


def test_secret_fingerprint_hides_secret():
    secret = "ory_pat_0123456789abcdef"

    fingerprint = secret_fingerprint(secret)

    assert secret not in fingerprint
    assert fingerprint.startswith(f"len={len(secret)} sha256=")
    assert fingerprint == secret_fingerprint(secret)


def test_secret_fingerprint_differs_per_secret():
    assert secret_fingerprint("key-one") != secret_fingerprint("key-two")


def test_traced_request_sets_attributes_and_logs():
    tracer = MagicMock()
    span = tracer.start_as_current_span.return_value.__enter__.return_value

    with patch("identity_proxy.utils.traced_requests.logger") as logger:
        with traced_request(
            tracer,
            "proxy_request",
            "GET",
            "/ui/login",
            "Proxying GET /ui/login",
            extra_attrs={"proxy.target_url": "https://upstream.example.com/ui/login"},
        ) as yielded:
            assert yielded is span

    tracer.start_as_current_span.assert_called_once_with("proxy_request")
    span.set_attribute.assert_any_call("proxy.method", "GET")
    span.set_attribute.assert_any_call("proxy.path", "/ui/login")
    span.set_attribute.assert_any_call(
        "proxy.target_url", "https://upstream.example.com/ui/login"
    )
    logger.debug.assert_called_once_with("Proxying GET /ui/login")
