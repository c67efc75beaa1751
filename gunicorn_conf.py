import multiprocessing

from projecthub.config import settings

# Gunicorn configuration file
# For FastAPI/Uvicorn, we use the UvicornWorker

bind = f"{settings.BIND_HOST}:{settings.BIND_PORT}"

# Worker configuration
# Standard formula: (2 x num_cores) + 1
workers = settings.WEB_CONCURRENCY or multiprocessing.cpu_count() * 2 + 1
worker_class = "uvicorn.workers.UvicornWorker"

# Timeout and Keepalive
timeout = 120
keepalive = 5

# Logging
accesslog = "-"  # Log to stdout
errorlog = "-"  # Log to stderr
loglevel = settings.LOG_LEVEL.lower()

# Process management
name = "projecthub_api"
reload = False
