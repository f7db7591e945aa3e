"""
URL parsing and normalization helpers.

Every URL that enters the frontier goes through ``parse_absolute_url`` so the
visited set only ever sees one spelling of a given address.
"""

from urllib.parse import urlsplit, urlunsplit

from .exceptions import InvalidURLError

ALLOWED_SCHEMES = ('http', 'https')
DEFAULT_PORTS = {'http': 80, 'https': 443}


def normalize_url(url: str) -> str:
    """
    Normalize a URL for deduplication.

    Lowercases scheme and host, drops default ports and the fragment, and
    turns an empty path into ``/``. The query string is kept as-is.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or '').lower()

    # urlsplit only validates the port lazily
    port = parts.port
    if ':' in host:
        host = f"[{host}]"

    netloc = host
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo += f":{parts.password}"
        netloc = f"{userinfo}@{host}"
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"

    return urlunsplit((scheme, netloc, parts.path or '/', parts.query, ''))


def parse_absolute_url(url: str) -> str:
    """
    Validate that ``url`` is an absolute http(s) URL and return its normalized form.

    Raises:
        InvalidURLError: if the URL has no http(s) scheme, no host, or a malformed port
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError(str(url), "empty URL")

    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except ValueError as e:
        raise InvalidURLError(url, str(e)) from e

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidURLError(url, f"unsupported scheme {parts.scheme!r}")
    if not hostname:
        raise InvalidURLError(url, "missing host")

    try:
        return normalize_url(url)
    except ValueError as e:
        raise InvalidURLError(url, str(e)) from e


def get_host(url: str) -> str:
    """Return the lowercase hostname of ``url`` without the port."""
    return (urlsplit(url).hostname or '').lower()
