"""Celery application instance.

Start the worker::

    celery -A storekeeper.app.workers.celery_app worker --loglevel=info
    celery -A storekeeper.app.workers.celery_app beat --loglevel=info
"""

from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from storekeeper.app.core.config import settings

celery = Celery(
    "storekeeper",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "storekeeper.app.workers.tasks.notifications",
        "storekeeper.app.workers.tasks.ledger",
    ],
)

celery.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="Asia/Ho_Chi_Minh",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
)

# Beat schedule: periodic tasks
celery.conf.beat_schedule = {
    "reconcile-credit-balances-daily": {
        "task": "storekeeper.app.workers.tasks.ledger.reconcile_credit_balances",
        "schedule": crontab(hour=3, minute=0),
    },
}
