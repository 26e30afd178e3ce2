"""
URL helpers for the proxy namespace.

Golden rule: a remote URL ``x`` is served at ``prefix + x`` and ``origin_path``
is the directory every cookie of that remote origin lives under.
"""

from __future__ import annotations

import re
from urllib.parse import unquote_plus, urljoin, urlparse

# Some servers and browsers collapse "https://" to "https:/" inside a path
_COLLAPSED_SCHEME = re.compile(r"^(https?):/+(?=[^/])", re.IGNORECASE)


def origin_path(prefix: str, url: str) -> str:
    """``/proxy/`` + ``https://a.example.com:8443/x`` -> ``/proxy/https://a.example.com:8443/``"""
    uri = urlparse(url)
    return f"{prefix}{uri.scheme}://{uri.netloc}/"


def proxy_url(prefix: str, url: str) -> str:
    """Map an absolute remote URL into the proxy namespace."""
    return f"{prefix}{url}"


def resolve_target_url(prefix: str, proxied_path: str, strip_params: tuple[str, ...] = ()) -> str:
    """
    Recover the remote URL from a proxied request path (with its query string).

    ``strip_params`` are proxy-only query markers that must not reach the remote site.
    """
    url = proxied_path[len(prefix):] if proxied_path.startswith(prefix) else proxied_path.lstrip("/")
    url = _COLLAPSED_SCHEME.sub(lambda m: m.group(1).lower() + "://", url, count=1)

    uri = urlparse(url)
    if uri.scheme not in ("http", "https") or not uri.netloc:
        raise ValueError(f"Not an absolute http(s) URL: {url!r}")

    if strip_params and uri.query:
        # Drop the marker pairs only; every other pair is forwarded byte-for-byte
        query_pairs = uri.query.split("&")
        clean_pairs = [pair for pair in query_pairs if unquote_plus(pair.split("=", 1)[0]) not in strip_params]
        if len(clean_pairs) != len(query_pairs):
            url = uri._replace(query="&".join(clean_pairs)).geturl()

    if not uri.path:
        # http://example.com?x=1 -> http://example.com/?x=1
        url = urlparse(url)._replace(path="/").geturl()

    return url


def rewrite_location(prefix: str, target_url: str, location: str) -> tuple[str, str]:
    """
    Resolve a redirect ``Location`` against the page that sent it.

    Returns ``(absolute remote URL, proxied location)``.
    """
    absolute = urljoin(target_url, location)
    if urlparse(absolute).scheme not in ("http", "https"):
        return absolute, location
    return absolute, proxy_url(prefix, absolute)
