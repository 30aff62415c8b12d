# Bind & workers
bind = "0.0.0.0:8000"
workers = 2  # override with GUNICORN_WORKERS
threads = 4  # request threads share the hashing pool
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr (collected by Docker)
accesslog = "-"
errorlog = "-"
loglevel = "info"  # override with LOG_LEVEL

# Trust one proxy hop; ProxyFix reads X-Forwarded-For inside the app
forwarded_allow_ips = "127.0.0.1"
proxy_protocol = False

# App factory
wsgi_app = "authcore:create_app()"
