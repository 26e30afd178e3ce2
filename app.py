"""
Main entry point for the unblocker proxy (development server).
"""
import os
import logging
from unblocker import create_app

app = create_app()

if __name__ == '__main__':
    port = int(os.environ.get("PORT", 5000))

    # Enable debug mode by default for local development
    # Set FLASK_ENV=production to disable debug mode
    debug = os.environ.get('FLASK_ENV') != 'production'

    # For local development, use localhost; for production, use 0.0.0.0
    host = '127.0.0.1' if debug else '0.0.0.0'

    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)
    logging.getLogger(__name__).info("Starting unblocker on http://%s:%s", host, port)
    logging.getLogger(__name__).info("Proxy prefix: %s", app.config['PROXY_CONFIG'].prefix)
    logging.getLogger(__name__).info("Debug mode: %s (auto-reload enabled)", "ON" if debug else "OFF")

    app.run(host=host, port=port, debug=debug)
