"""
Order of the rewriting stages around one upstream request.
"""

from __future__ import annotations

import logging

from .exchange import ProxyExchange
from .services.content_types import is_html, should_process
from .services.cookie_carrier import carry_cookies_on_redirect, complete_hand_off
from .services.link_rewriter import link_rewrite_stream
from .services.meta_robots import meta_robots_stream
from .services.set_cookies import rewrite_set_cookies

logger = logging.getLogger(__name__)


def handle_request(exchange: ProxyExchange) -> None:
    """Runs before the upstream request. May answer the client itself."""
    complete_hand_off(exchange)


def handle_response(exchange: ProxyExchange) -> None:
    """
    Runs after the upstream response headers arrived.

    Header stages finish here; body stages are only attached and run while the
    body streams to the client.
    """
    config = exchange.config

    server_cookies = rewrite_set_cookies(
        exchange.response_headers,
        exchange.target_url,
        config.prefix,
        redirect_url=exchange.redirect_url,
    )
    carry_cookies_on_redirect(exchange, server_cookies)

    if should_process(config, exchange.content_type):
        exchange.pipe(link_rewrite_stream(config.prefix, exchange.target_url))

    if config.meta_robots and is_html(exchange.content_type):
        exchange.pipe(meta_robots_stream())

    logger.debug(
        f"Response pipeline for {exchange.target_url}: content_type={exchange.content_type} "
        f"set_cookie={len(exchange.response_headers.getlist('Set-Cookie'))}"
    )
