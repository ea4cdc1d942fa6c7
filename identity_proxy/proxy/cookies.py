import re
from typing import Iterable, List
from urllib.parse import quote, urlsplit

# A comma only separates two cookies when a new `name=` pair follows it.
# Commas inside attribute values, e.g. `Expires=Wed, 21 Oct 2025 07:28:00 GMT`,
# are followed by a date fragment and are left alone.
_COOKIE_SEPARATOR = re.compile(r",(?=\s*[!#$%&'*+\-.^_`|~0-9A-Za-z]+=)")

# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"

_DEFAULT_PORTS = {"http": 80, "https": 443}


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def url_host(url: str) -> str:
    """Host of an absolute URL, lowercased, with its port unless it is the scheme default."""
    parsed = urlsplit(url)
    host = (parsed.hostname or "").lower()
    if parsed.port and parsed.port != _DEFAULT_PORTS.get(parsed.scheme):
        host = f"{host}:{parsed.port}"
    return host


def registrable_domain(host: str) -> str:
    return ".".join(host.split(".")[-2:])


def split_set_cookie_header(value: str) -> List[str]:
    """Split a possibly comma-joined Set-Cookie value into individual cookies."""
    return [cookie.lstrip() for cookie in _COOKIE_SEPARATOR.split(value) if cookie.strip()]


class CookieDomainRewriter:
    """Moves cookies issued for the upstream host onto the public host.

    Two substitutions run on each cookie, broadest first: the full upstream
    host, then its registrable domain. Running them the other way round would
    turn ``upstream.example.com`` into ``upstream.example.org`` before the
    full-host pattern had a chance to match.
    """

    def __init__(self, upstream_origin: str, public_origin: str):
        upstream_host = url_host(upstream_origin)
        public_host = url_host(public_origin)
        self.replacements = [
            (encode_uri_component(upstream_host), encode_uri_component(public_host)),
            (
                encode_uri_component(registrable_domain(upstream_host)),
                encode_uri_component(registrable_domain(public_host)),
            ),
        ]

    def rewrite_cookie(self, cookie: str) -> str:
        for old, new in self.replacements:
            cookie = cookie.replace(old, new)
        return cookie

    def rewrite(self, set_cookie_values: Iterable[str]) -> List[str]:
        """Rewrite every Set-Cookie header value, one output entry per cookie, order kept."""
        rewritten = []
        for value in set_cookie_values:
            for cookie in split_set_cookie_header(value):
                rewritten.append(self.rewrite_cookie(cookie))
        return rewritten
