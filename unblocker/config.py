"""
Proxy configuration.

Built once by ``create_app()`` and never written afterwards, so every request
can read it without locking.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from flask import current_app

DEFAULT_PREFIX = "/proxy/"

HTML_CONTENT_TYPES = ("text/html", "application/xml+xhtml", "application/xhtml+xml")
CSS_CONTENT_TYPES = ("text/css",)
DEFAULT_PROCESS_CONTENT_TYPES = HTML_CONTENT_TYPES + CSS_CONTENT_TYPES


@dataclass(frozen=True)
class ProxyConfig:
    prefix: str = DEFAULT_PREFIX
    process_content_types: tuple[str, ...] = DEFAULT_PROCESS_CONTENT_TYPES
    meta_robots: bool = True
    connect_timeout: float = 75
    read_timeout: float = 300


def normalize_prefix(prefix: str) -> str:
    """Make sure the prefix starts and ends with a slash ("proxy" -> "/proxy/")."""
    prefix = (prefix or "").strip()
    if not prefix.startswith("/"):
        prefix = "/" + prefix
    if not prefix.endswith("/"):
        prefix += "/"
    return prefix


def _env_flag(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def _env_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if not value:
        return default
    return tuple(part.strip().lower() for part in value.split(",") if part.strip())


def load_proxy_config(overrides: Mapping[str, Any] | None = None) -> ProxyConfig:
    """
    Read proxy settings from the environment.

    ``overrides`` uses the same keys as the environment (PROXY_PREFIX, ...) and
    wins over it; tests use it instead of patching os.environ.
    """
    source: dict[str, Any] = dict(os.environ)
    if overrides:
        source.update(overrides)

    process_types = source.get("PROXY_PROCESS_CONTENT_TYPES")
    if isinstance(process_types, (list, tuple)):
        process_types = ",".join(process_types)

    meta_robots = source.get("PROXY_META_ROBOTS")
    if isinstance(meta_robots, bool):
        meta_robots = "1" if meta_robots else "0"

    return ProxyConfig(
        prefix=normalize_prefix(source.get("PROXY_PREFIX") or DEFAULT_PREFIX),
        process_content_types=_env_list(process_types, DEFAULT_PROCESS_CONTENT_TYPES),
        meta_robots=_env_flag(meta_robots, True),
        connect_timeout=float(source.get("PROXY_CONNECT_TIMEOUT") or 75),
        read_timeout=float(source.get("PROXY_READ_TIMEOUT") or 300),
    )


def get_proxy_config() -> ProxyConfig:
    """Get the proxy config of the running app."""
    config = current_app.config.get("PROXY_CONFIG")
    if isinstance(config, ProxyConfig):
        return config
    return ProxyConfig()
