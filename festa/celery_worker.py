"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run with:
    celery -A festa.celery_worker worker --loglevel=info
"""

from celery import Celery

from festa.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "festa_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["festa.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # One sheet writer at a time per worker process
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    result_expires=3600,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Fail fast when Redis is down; the API request must not hang on it
    task_publish_retry_policy={
        "max_retries": 1,
        "interval_start": 0,
        "interval_step": 0.2,
        "interval_max": 0.5,
    },

    broker_connection_retry_on_startup=True,
)


if __name__ == "__main__":
    celery_app.start()
