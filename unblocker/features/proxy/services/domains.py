"""
Registrable domain ("eTLD+1") lookup.
"""

from __future__ import annotations

import tldextract

# Bundled public suffix snapshot only: no network fetch, no disk cache.
_TLDX = tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())


def registrable_domain(hostname: str | None) -> str:
    """
    Return the registrable domain of a hostname (``a.example.co.uk`` -> ``example.co.uk``).

    Hosts without one (IP addresses, ``localhost``) are their own registrable domain.
    """
    host = (hostname or "").strip().lower().rstrip(".")
    if not host:
        return ""
    ext = _TLDX(host)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return host


def same_registrable_domain(host_a: str | None, host_b: str | None) -> bool:
    """Whether two hostnames belong to the same site."""
    domain_a = registrable_domain(host_a)
    return bool(domain_a) and domain_a == registrable_domain(host_b)
