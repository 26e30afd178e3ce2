"""
Gunicorn configuration for unblocker production deployment

    gunicorn -c gunicorn_config.py unblocker:app
"""
import multiprocessing
import os

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', '5000')}"
backlog = 2048

# Worker processes
# Proxying is I/O-bound: gevent workers each handle many concurrent streamed responses
workers = multiprocessing.cpu_count() + 1
worker_class = 'gevent'
worker_connections = 1000  # Max concurrent connections per worker
# Must outlast the upstream read timeout (PROXY_READ_TIMEOUT) for long streams
timeout = int(os.environ.get('GUNICORN_TIMEOUT', '330'))
keepalive = 5

# Logging
accesslog = '-'  # Log to stdout
errorlog = '-'   # Log to stderr
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'unblocker'

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None
