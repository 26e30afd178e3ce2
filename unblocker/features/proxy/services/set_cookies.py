"""
Set-Cookie rewriting: move every cookie the remote site sets into that site's
directory of the proxy namespace.
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from .cookie_codec import Cookie, parse_set_cookie_headers, serialize_cookie

logger = logging.getLogger(__name__)


def rewrite_set_cookies(response_headers, target_url: str, prefix: str, redirect_url: str | None = None) -> list[Cookie]:
    """
    Rewrite the ``Set-Cookie`` headers of a response in place.

    The new path is ``prefix + scheme://host + original path``, using the
    redirect target when the response is a redirect. ``Domain`` and ``Secure``
    are always removed: the proxy serves every site from one origin and may
    not be reached over https.

    Returns the parsed cookies so later stages know which names the server set.
    """
    cookies = parse_set_cookie_headers(response_headers.getlist("Set-Cookie"))
    if not cookies:
        return cookies

    logger.debug(f"Remapping {len(cookies)} set-cookie header(s) for {target_url}")
    target_uri = urlparse(redirect_url or target_url)

    for cookie in cookies:
        # A path not starting with "/" counts as absent (RFC 6265 5.2.4)
        path = cookie.path if (cookie.path or "").startswith("/") else "/"
        cookie.path = f"{prefix}{target_uri.scheme}://{target_uri.netloc}{path}"
        cookie.domain = None
        cookie.secure = None

    response_headers.setlist("Set-Cookie", [serialize_cookie(cookie) for cookie in cookies])
    return cookies
