"""
unblocker - path-prefixed web proxy with cookie and link rewriting
"""
from flask import Flask
import os

from unblocker.config import load_proxy_config


def create_app(overrides=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    # Configuration
    app.config['MAX_CONTENT_LENGTH'] = 20 * 1024 * 1024  # 20MB max request body forwarded upstream
    proxy_config = load_proxy_config(overrides)
    app.config['PROXY_CONFIG'] = proxy_config
    if overrides:
        app.config.update({k: v for k, v in overrides.items() if not k.startswith('PROXY_')})

    # Ensure Flask knows it's behind a proxy (for HTTPS detection)
    # This is important when running behind nginx with SSL termination
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,
        x_proto=1,
        x_host=1,
        x_port=1,
        x_prefix=1
    )

    # Proxied URLs contain "//" (http://...), which must reach the route untouched
    app.url_map.merge_slashes = False

    @app.route('/')
    def root():
        """Point visitors at the proxy prefix"""
        from flask import redirect
        start_url = os.environ.get('PROXY_START_URL')
        if start_url:
            return redirect(proxy_config.prefix + start_url)
        return f"Usage: {proxy_config.prefix}<absolute url>", 200, {'Content-Type': 'text/plain; charset=utf-8'}

    # Register blueprints
    from unblocker.features.proxy.blueprint import bp as proxy_bp
    app.register_blueprint(proxy_bp, url_prefix=proxy_config.prefix.rstrip('/'))

    return app

# Create app instance for WSGI servers (gunicorn, etc.)
# This allows gunicorn to load 'unblocker:app'
app = create_app()
