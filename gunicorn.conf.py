"""
Gunicorn Server Configuration

Runs the Swapt Analytics API with Uvicorn workers under Gunicorn.
"""

import os

# Server socket
bind = os.getenv("BIND", f"0.0.0.0:{os.getenv('PORT', '8000')}")
backlog = 2048

# The metrics cache file assumes a single writer
workers = int(os.getenv("WORKERS", 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000

# A refresh makes one Klaviyo request per submission event and can run long
timeout = int(os.getenv("GUNICORN_TIMEOUT", 600))
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "swapt-analytics-api"

# Server mechanics
daemon = False
pidfile = "/tmp/gunicorn.pid"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
