"""
Carry the client's cookies across a protocol or subdomain change.

Cookies live under ``prefix + scheme://host/`` so a jump from
``http://example.com`` to ``https://www.example.com`` would lose the session.
Both halves of the hand-off re-mint the old cookies under the new origin's
directory. Only name and value survive: HttpOnly, Expires and Max-Age are
not known to the proxy at that point and the path is reset to the site root.
"""

from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import parse_qs, urlparse

from .cookie_codec import Cookie, parse_cookie_header, serialize_cookie
from .domains import same_registrable_domain
from .urls import origin_path

logger = logging.getLogger(__name__)

REDIRECT_QUERY_PARAM = "__proxy_cookies_to"


def carried_cookies(raw_cookie_header: str, prefix: str, next_url: str) -> dict[str, str]:
    """Set-Cookie values (by name) that copy the client's cookies to ``next_url``'s directory."""
    path = origin_path(prefix, next_url)
    return {
        name: serialize_cookie(Cookie(name=name, value=value, path=path))
        for name, value in parse_cookie_header(raw_cookie_header).items()
    }


def crosses_origin_within_site(from_url: str, to_url: str) -> bool:
    """Scheme or hostname changes but the registrable domain does not."""
    from_uri = urlparse(from_url)
    to_uri = urlparse(to_url)
    if from_uri.scheme == to_uri.scheme and from_uri.hostname == to_uri.hostname:
        return False
    return same_registrable_domain(from_uri.hostname, to_uri.hostname)


def carry_cookies_on_redirect(exchange, server_cookies: Iterable[Cookie] = ()) -> bool:
    """
    Outbound half: the remote site redirected to another origin of the same site.

    Appends the client's current cookies, re-scoped to the redirect target, to
    the response. A cookie the server just set wins over the carried copy.
    Returns True when cookies were carried.
    """
    if not exchange.redirect_url:
        return False
    if not crosses_origin_within_site(exchange.target_url, exchange.redirect_url):
        return False

    logger.debug(f"Copying cookies from {exchange.target_url} to {exchange.redirect_url}")
    carried = carried_cookies(exchange.client_cookie, exchange.config.prefix, exchange.redirect_url)
    for cookie in server_cookies:
        carried.pop(cookie.name, None)

    if carried:
        existing = exchange.response_headers.getlist("Set-Cookie")
        exchange.response_headers.setlist("Set-Cookie", existing + list(carried.values()))
    return True


def hand_off_target(target_url: str) -> str | None:
    """Value of the reserved hand-off parameter, if the URL carries one."""
    query = urlparse(target_url).query
    if not query:
        return None
    values = parse_qs(query).get(REDIRECT_QUERY_PARAM)
    return values[0] if values else None


def complete_hand_off(exchange) -> bool:
    """
    Inbound half: the browser followed a link rewritten by the link scanner.

    The request arrived on the old origin's directory, so it carries the old
    cookies. Instead of proxying it, redirect to the real destination and set
    those cookies on the destination's directory on the way.
    """
    next_url = hand_off_target(exchange.target_url)
    if not next_url:
        return False

    next_uri = urlparse(next_url)
    if next_uri.scheme not in ("http", "https") or not next_uri.netloc:
        raise ValueError(f"{REDIRECT_QUERY_PARAM} must be an absolute http(s) URL, got {next_url!r}")

    logger.debug(f"Copying cookies from {exchange.target_url} to {next_url}")
    carried = carried_cookies(exchange.client_cookie, exchange.config.prefix, next_url)
    exchange.redirect_to(next_url, {"Set-Cookie": list(carried.values())})
    return True
