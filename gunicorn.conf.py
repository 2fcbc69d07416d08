"""
Gunicorn WSGI Server Configuration

Serves ``app:application``. Worker count defaults to one because the
in-memory reference services keep their data per process; set
``GUNICORN_WORKERS`` when the application is wired to shared services.
"""

import os

# =============================================================================
# SERVER SOCKET CONFIGURATION
# =============================================================================

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
backlog = 2048

# =============================================================================
# WORKER PROCESS CONFIGURATION
# =============================================================================

workers = int(os.getenv("GUNICORN_WORKERS", "1"))
threads = int(os.getenv("GUNICORN_THREADS", "4"))
worker_class = "gthread"

# Restart workers periodically to bound memory growth
max_requests = 1000
max_requests_jitter = 100

timeout = 60
keepalive = 5
graceful_timeout = 30

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

# Request logging is done by the application; gunicorn logs errors only.
accesslog = None
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
capture_output = True

proc_name = "dealership-api"

limit_request_line = 8192
limit_request_fields = 100
limit_request_field_size = 8192


def when_ready(server):
    server.log.info("Dealership API ready to serve requests on %s", bind)


def worker_abort(worker):
    worker.log.error("Worker %s aborted", worker.pid)
