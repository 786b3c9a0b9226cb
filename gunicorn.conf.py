"""
Gunicorn configuration.

    gunicorn run:app
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# The scheduler lives in one process only (SCHEDULER_RUNNING guard), so
# preloading keeps it in the master before workers fork
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 120
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'diveloyalty'

preload_app = True

graceful_timeout = 30
