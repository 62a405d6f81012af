import os

wsgi_app = "gatehouse:create_app()"

# Bind & workers. Each worker runs its own whitelist reaper.
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = int(os.getenv("GUNICORN_THREADS", "4"))
timeout = 30
graceful_timeout = 10
keepalive = 5

# Logs to stdout/stderr; the app itself logs JSON.
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

forwarded_allow_ips = "*"
