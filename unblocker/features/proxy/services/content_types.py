"""
Content-type classification: which responses get their bodies rewritten.
"""

from __future__ import annotations

from unblocker.config import HTML_CONTENT_TYPES, ProxyConfig


def media_type(content_type_header: str | None) -> str:
    """``"Text/HTML; charset=UTF-8"`` -> ``"text/html"``"""
    return (content_type_header or "").split(";", 1)[0].strip().lower()


def charset(content_type_header: str | None, default: str = "utf-8") -> str:
    """Charset parameter of a Content-Type header, or ``default``."""
    for param in (content_type_header or "").split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"').lower()
    return default


def is_html(content_type: str) -> bool:
    return content_type in HTML_CONTENT_TYPES


def should_process(config: ProxyConfig, content_type: str) -> bool:
    """Whether the body of a response with this (bare) media type is scanned."""
    return content_type in config.process_content_types
