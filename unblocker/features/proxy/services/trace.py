"""
Proxy tracing helpers.
"""

from __future__ import annotations

from flask import request

TRACE_PARAM = "__proxy_trace"


def trace_enabled() -> bool:
    """
    Enable verbose tracing when the client requests it.
    - via ?__proxy_trace=1
    - or via cookie __proxy_trace=1
    """
    if request.args.get(TRACE_PARAM) == "1":
        return True
    if request.cookies.get(TRACE_PARAM) == "1":
        return True
    return False
