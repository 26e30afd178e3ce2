"""
Proxy blueprint and route registration.

The blueprint is mounted under the configured proxy prefix by ``create_app()``.
"""

import os
from flask import Blueprint

bp = Blueprint("proxy", __name__)

# Reduce debug logging in production for performance
IS_PRODUCTION = os.environ.get("FLASK_ENV") == "production" or os.environ.get("FLASK_DEBUG") == "0"

# Import routes for side effects (decorators attach to bp)
from . import routes  # noqa: E402,F401
