"""
Cookie parsing and serialization helpers.

Values are kept exactly as received: nothing here quotes, unquotes or validates
cookie characters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from werkzeug.http import http_date, parse_date

logger = logging.getLogger(__name__)


@dataclass
class Cookie:
    """One cookie. ``None`` means the attribute is absent."""

    name: str
    value: str
    domain: str | None = None
    path: str | None = None
    max_age: int | None = None
    expires: datetime | None = None
    http_only: bool | None = None
    secure: bool | None = None


def parse_cookie_header(raw) -> dict[str, str]:
    """
    Parse a ``Cookie`` request header into a name -> value dict.

    Only the leading whitespace of each pair is removed; a pair without ``=``
    gets an empty value and the last duplicate wins.
    """
    if not isinstance(raw, str) or raw == "":
        return {}

    cookies: dict[str, str] = {}
    for pair in raw.split(";"):
        pair = pair.lstrip()
        if "=" in pair:
            name, value = pair.split("=", 1)
            cookies[name] = value
        else:
            cookies[pair] = ""
    return cookies


def serialize_cookie(cookie: Cookie) -> str:
    """Build a ``Set-Cookie`` value without changing the cookie."""
    result = f"{cookie.name}={cookie.value}"

    if cookie.max_age is not None:
        result += f"; Max-Age={cookie.max_age}"
    if cookie.domain is not None:
        result += f"; Domain={cookie.domain}"
    if cookie.path is not None:
        result += f"; Path={cookie.path}"
    if cookie.expires is not None:
        try:
            result += f"; Expires={http_date(cookie.expires)}"
        except (TypeError, ValueError, OverflowError) as e:
            logger.debug(f"Dropping unformattable Expires on cookie {cookie.name}: {e}")
    if cookie.http_only:
        result += "; HttpOnly"
    if cookie.secure:
        result += "; Secure"
    return result


def parse_set_cookie(raw: str) -> Cookie:
    """Parse one ``Set-Cookie`` header value."""
    parts = raw.split(";")
    name_value = parts[0].strip()
    if "=" in name_value:
        name, value = name_value.split("=", 1)
    else:
        name, value = "", name_value
    cookie = Cookie(name=name.strip(), value=value.strip())

    for part in parts[1:]:
        part = part.strip()
        if not part:
            continue
        key, _, attr_value = part.partition("=")
        key = key.strip().lower()
        attr_value = attr_value.strip()

        if key == "max-age":
            try:
                cookie.max_age = int(attr_value)
            except ValueError:
                logger.debug(f"Ignoring invalid Max-Age {attr_value!r} on cookie {cookie.name}")
        elif key == "expires":
            cookie.expires = parse_date(attr_value)
        elif key == "domain":
            cookie.domain = attr_value
        elif key == "path":
            cookie.path = attr_value
        elif key == "httponly":
            cookie.http_only = True
        elif key == "secure":
            cookie.secure = True

    return cookie


def parse_set_cookie_headers(values: str | Iterable[str] | None) -> list[Cookie]:
    """Parse a single ``Set-Cookie`` value or a list of them."""
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [parse_set_cookie(value) for value in values if value and value.strip()]
