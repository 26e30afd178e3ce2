"""
Route same-site links that change protocol or subdomain through the cookie
hand-off.

A proxied link such as ``/proxy/https://www.example.com/cart`` found on
``http://example.com/`` is rewritten to
``/proxy/http://example.com/cart?__proxy_cookies_to=https%3A%2F%2Fwww.example.com%2Fcart``:
the browser sends the cookies of the current directory, and the proxy
redirects to the real target with those cookies copied over.

Only matches that sit entirely inside one chunk are rewritten.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator
from urllib.parse import quote, urlparse

from .cookie_carrier import REDIRECT_QUERY_PARAM
from .domains import registrable_domain

logger = logging.getLogger(__name__)

# encodeURIComponent leaves these unescaped (plus alphanumerics and "-_.~")
_URI_COMPONENT_SAFE = "!*'()"


def build_link_pattern(prefix: str, site_domain: str) -> re.Pattern:
    """
    Match proxied absolute links to ``site_domain`` or one subdomain level below it.

    Group 1 is the remote URL. The host must end right after ``site_domain``
    (``example.com.evil.org`` and ``example.community`` do not match). Links end
    at a quote, a closing paren, a space or a backslash.
    """
    return re.compile(
        re.escape(prefix) + r"(https?://([a-z0-9-]+\.)?" + re.escape(site_domain) + r"(?![a-z0-9.-])[^'\") \\]*)",
        re.IGNORECASE,
    )


def hand_off_link(prefix: str, page_url: str, url: str) -> str:
    """The proxied link that carries cookies from ``page_url``'s origin to ``url``."""
    page_uri = urlparse(page_url)
    next_uri = urlparse(url)
    # Bytes the page charset could not decode are percent-encoded as the raw bytes
    encoded_url = quote(url, safe=_URI_COMPONENT_SAFE, errors="surrogateescape")
    return (
        f"{prefix}{page_uri.scheme}://{page_uri.netloc}{next_uri.path or '/'}"
        f"?{REDIRECT_QUERY_PARAM}={encoded_url}"
    )


def rewrite_links(text: str, pattern: re.Pattern, prefix: str, page_url: str) -> str:
    """Rewrite every cross-origin match in ``text``; same-origin links stay as they are."""
    page_uri = urlparse(page_url)

    def update_link(match: re.Match) -> str:
        url = match.group(1)
        next_uri = urlparse(url)
        if next_uri.scheme.lower() == page_uri.scheme and next_uri.netloc.lower() == page_uri.netloc.lower():
            return match.group(0)
        rewritten = hand_off_link(prefix, page_url, url)
        logger.debug(f"Rewriting link from {match.group(0)} to {rewritten} so cookies can follow")
        return rewritten

    return pattern.sub(update_link, text)


def link_rewrite_stream(prefix: str, page_url: str):
    """Create a text transform bound to one page."""
    pattern = build_link_pattern(prefix, registrable_domain(urlparse(page_url).hostname))

    def transform(chunks: Iterable[str]) -> Iterator[str]:
        for chunk in chunks:
            yield rewrite_links(chunk, pattern, prefix, page_url)

    return transform
