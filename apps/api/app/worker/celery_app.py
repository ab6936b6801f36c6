import os

from celery import Celery

from app.core.config import settings


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v and v.strip() else default


BROKER_URL = (
    _env("CELERY_BROKER_URL")
    or _env("REDIS_URL")
    or "redis://localhost:6379/0"
)

RESULT_BACKEND = _env("CELERY_RESULT_BACKEND") or BROKER_URL

SCHEDULER_QUEUE = "scheduler"

# IMPORTANT: the variable name MUST be `celery_app`
celery_app = Celery(
    "vupload",
    broker=BROKER_URL,
    backend=RESULT_BACKEND,
)

# Ensure tasks are discovered
celery_app.autodiscover_tasks(["app.worker"])

celery_app.conf.update(
    task_track_started=True,
    result_extended=True,
    enable_utc=True,
    timezone="UTC",
    task_always_eager=settings.env == "test",
    task_routes={
        "scheduler.*": {"queue": SCHEDULER_QUEUE},
    },
    # Run the scheduler queue with exactly one worker process:
    #   celery -A app.worker.celery_app worker -Q scheduler --concurrency=1 --beat
    # Every worker start resets "Uploading" rows to Pending. Other workers on this
    # broker must set SCHEDULER_RECOVER_ON_START=0 or they will reset an upload in flight.
    beat_schedule={
        "upload-scheduler-tick": {
            "task": "scheduler.tick",
            "schedule": settings.scheduler_tick_sec,
            # a tick queued behind a long upload is stale by the time it runs
            "options": {"expires": settings.scheduler_tick_sec},
        },
    },
)

__all__ = ["celery_app"]
