from celery import Celery
from celery.schedules import crontab

from jobhub.config import settings

app = Celery("jobhub", broker=settings.REDIS_URL, backend=settings.REDIS_URL)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=3600,
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_hijack_root_logger=False,
    task_routes={"jobhub.tasks.quote_tasks.*": {"queue": "quotes"}},
    beat_schedule={
        "expire-stale-quotes": {
            "task": "jobhub.tasks.quote_tasks.expire_stale_quotes",
            "schedule": crontab(minute=f"*/{settings.QUOTE_SWEEP_MINUTES}"),
        },
    },
)

app.autodiscover_tasks(["jobhub.tasks.quote_tasks"])
