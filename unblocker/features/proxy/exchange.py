"""
Per-request context shared by the proxy pipeline stages.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Mapping

from flask import Response
from werkzeug.datastructures import Headers

from unblocker.config import ProxyConfig

from .services.streams import TextTransform, decode_chunks, encode_chunks
from .services.urls import proxy_url

logger = logging.getLogger(__name__)


class ProxyExchange:
    """
    One request/response cycle through the proxy.

    Header stages own ``request_headers``/``response_headers``; body stages only
    replace ``body_stream`` through ``pipe()``. Never shared between requests.
    """

    def __init__(
        self,
        config: ProxyConfig,
        target_url: str,
        request_headers: Headers | None = None,
        redirect_url: str | None = None,
    ):
        self.config = config
        self.target_url = target_url
        self.redirect_url = redirect_url
        self.request_headers = request_headers if request_headers is not None else Headers()
        self.response_headers = Headers()
        self.status_code = 200
        self.content_type = ""
        self.charset = "utf-8"
        self.body_stream: Iterable = ()
        self.client_response: Response | None = None
        self._is_text = False

    @property
    def client_cookie(self) -> str:
        """Raw ``Cookie`` header the browser sent with this request."""
        return self.request_headers.get("Cookie", "")

    @property
    def handled(self) -> bool:
        """True once a stage answered the client itself (no upstream request)."""
        return self.client_response is not None

    def redirect_to(self, url: str, headers: Mapping[str, str | list[str]] | None = None, status: int = 307):
        """Answer the client with a redirect to ``url`` inside the proxy namespace."""
        response = Response(status=status)
        response.headers["Location"] = proxy_url(self.config.prefix, url)
        for name, value in (headers or {}).items():
            if isinstance(value, (list, tuple)):
                for item in value:
                    response.headers.add(name, item)
            else:
                response.headers.add(name, value)
        self.client_response = response
        logger.debug(f"Short-circuiting {self.target_url} with {status} to {response.headers['Location']}")

    def pipe(self, transform: TextTransform):
        """Chain a text transform onto the body stream."""
        if not self._is_text:
            self.body_stream = decode_chunks(self.body_stream, self.charset)
            self._is_text = True
        self.body_stream = transform(self.body_stream)

    def iter_body(self) -> Iterator[bytes]:
        """The body as bytes, after every piped transform."""
        if self._is_text:
            return encode_chunks(self.body_stream, self.charset)
        return iter(self.body_stream)
