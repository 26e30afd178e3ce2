"""
Proxy route: forwards ``<prefix><absolute url>`` to the remote site.

URL structure: {proxy host}{prefix}{scheme}://{remote host}/{path}
"""

from __future__ import annotations

import logging
import traceback
from urllib.parse import quote

import requests
from flask import Response, request
from urllib3.exceptions import MaxRetryError, ResponseError
from werkzeug.datastructures import Headers

from unblocker.config import get_proxy_config

from .blueprint import IS_PRODUCTION, bp
from .exchange import ProxyExchange
from .http_session import _SESSION
from .pipeline import handle_request, handle_response
from .services.content_types import charset, media_type
from .services.trace import TRACE_PARAM, trace_enabled
from .services.urls import resolve_target_url, rewrite_location

logger = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]

excluded_request_headers = {
    "host",
    "connection",
    "keep-alive",
    "proxy-connection",
    "te",
    "upgrade",
    "content-length",
    "accept-encoding",
    "x-forwarded-for",
    "x-real-ip",
    "x-forwarded-proto",
    "x-forwarded-host",
    "x-forwarded-port",
    "x-forwarded-prefix",
}

excluded_response_headers = {"content-encoding", "content-length", "transfer-encoding", "connection", "set-cookie"}

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


def _proxied_path() -> str:
    """Request path plus query string, still percent-encoded where the client encoded it."""
    raw_uri = request.environ.get("RAW_URI") or request.environ.get("REQUEST_URI")
    if raw_uri and raw_uri.startswith("/"):
        script_root = request.script_root
        if script_root and raw_uri.startswith(script_root):
            raw_uri = raw_uri[len(script_root):]
        return raw_uri

    path = quote(request.path, safe="/:@!$&'()*+,;=~")
    query_string = request.query_string.decode(errors="ignore")
    return f"{path}?{query_string}" if query_string else path


def _upstream_headers() -> Headers:
    headers = Headers()
    for name, value in request.headers:
        if name.lower() not in excluded_request_headers:
            headers.add(name, value)
    # requests only decodes gzip/deflate transparently
    headers["Accept-Encoding"] = "gzip, deflate"
    return headers


def _read_set_cookie_headers(resp) -> list[str]:
    try:
        if hasattr(resp.raw.headers, "getlist"):
            return resp.raw.headers.getlist("Set-Cookie")
    except AttributeError:
        pass
    set_cookie = resp.headers.get("Set-Cookie")
    return [set_cookie] if set_cookie else []


def _load_upstream_response(exchange: ProxyExchange, resp) -> None:
    """Copy status, headers and body stream of the upstream response onto the exchange."""
    exchange.status_code = resp.status_code
    for set_cookie_value in _read_set_cookie_headers(resp):
        exchange.response_headers.add("Set-Cookie", set_cookie_value)

    try:
        raw_headers = list(resp.raw.headers.items())
    except AttributeError:
        raw_headers = list(resp.headers.items())

    for name, value in raw_headers:
        name_lower = name.lower()
        if name_lower in excluded_response_headers:
            continue
        if name_lower == "location" and resp.status_code in REDIRECT_STATUSES:
            exchange.redirect_url, value = rewrite_location(exchange.config.prefix, exchange.target_url, value)
        exchange.response_headers.add(name, value)

    content_type_header = resp.headers.get("Content-Type", "")
    exchange.content_type = media_type(content_type_header)
    exchange.charset = charset(content_type_header)
    exchange.body_stream = resp.iter_content(chunk_size=8192)


@bp.route("/<path:url>", methods=PROXY_METHODS, merge_slashes=False)
def proxy_path(url: str):
    """
    Proxy a request to the remote URL embedded in the path.

    Cookie and link rewriting happen in ``pipeline``; this route only moves
    bytes and maps transport errors to status codes.
    """
    config = get_proxy_config()
    target_url = None

    try:
        trace = trace_enabled()
        target_url = resolve_target_url(config.prefix, _proxied_path(), strip_params=(TRACE_PARAM,))

        if trace:
            logger.info(
                "[PROXY TRACE] proxy.enter input=%s target=%s cookie_names=%s referer=%s",
                request.full_path,
                target_url,
                ",".join(request.cookies.keys()),
                request.referrer or "",
            )

        exchange = ProxyExchange(config, target_url, request_headers=_upstream_headers())

        handle_request(exchange)
        if exchange.handled:
            if trace:
                logger.info(
                    "[PROXY TRACE] proxy.hand_off target=%s location=%s set_cookie=%d",
                    target_url,
                    exchange.client_response.headers.get("Location"),
                    len(exchange.client_response.headers.getlist("Set-Cookie")),
                )
            return exchange.client_response

        if not IS_PRODUCTION:
            logger.debug(f"Proxy request: method={request.method} target={target_url}")

        data = request.get_data()
        resp = _SESSION.request(
            method=request.method,
            url=target_url,
            headers=dict(exchange.request_headers.items()),
            data=data or None,
            allow_redirects=False,
            stream=True,
            timeout=(config.connect_timeout, config.read_timeout),
        )

        try:
            _load_upstream_response(exchange, resp)
            handle_response(exchange)
        except Exception:
            # generate() never runs, so the pooled connection is released here
            resp.close()
            raise

        if trace:
            logger.info(
                "[PROXY TRACE] proxy.response target=%s status=%s redirect=%s content_type=%s set_cookie=%s",
                target_url,
                resp.status_code,
                exchange.redirect_url or "",
                exchange.content_type,
                exchange.response_headers.getlist("Set-Cookie"),
            )

        def generate():
            try:
                for chunk in exchange.iter_body():
                    if chunk:
                        yield chunk
            except Exception as e:
                logger.error(f"Error streaming content from {target_url}: {e}")
            finally:
                resp.close()

        return Response(generate(), status=resp.status_code, headers=exchange.response_headers)

    except requests.exceptions.ConnectionError as e:
        logger.error(f"Connection error proxying to {target_url}: {e}")
        return f"Remote site {target_url} is not responding.", 502
    except requests.exceptions.Timeout as e:
        logger.error(f"Timeout error proxying to {target_url}: {e}")
        return "Request to remote site timed out.", 504
    except (ResponseError, MaxRetryError) as e:
        logger.error(f"Retry error proxying to {target_url}: {e}")
        return f"Error proxying request: {str(e)}. The remote site may be returning errors.", 502
    except requests.exceptions.RequestException as e:
        logger.error(f"Request error proxying to {target_url}: {e}")
        return f"Error proxying request: {str(e)}", 502
    except ValueError as e:
        logger.warning(f"Rejected proxy request {request.full_path}: {e}")
        return f"Invalid proxy URL: {str(e)}", 400
    except Exception as e:
        error_trace = traceback.format_exc()
        logger.error(f"Unexpected error in proxy route for {target_url or url}: {e}\n{error_trace}")
        return f"Internal proxy error: {str(e)}. Check server logs for details.", 500
