"""Celery application configuration"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging
from kombu import Exchange, Queue

from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "wallet_rewards",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.tasks.reconciliation_tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=60 * 60,  # 1 hour
    task_soft_time_limit=55 * 60,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,

    # Task routing
    task_routes={
        "reconcile_discord_memberships": {"queue": "reconciliation"},
        "reconcile_active_tweets": {"queue": "reconciliation"},
    },

    # Result backend configuration
    result_expires=24 * 3600,
)

# Define queues
celery_app.conf.task_queues = (
    Queue("default", Exchange("default"), routing_key="default"),
    Queue("reconciliation", Exchange("reconciliation"), routing_key="reconciliation"),
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "reconcile-discord-memberships": {
        "task": "reconcile_discord_memberships",
        "schedule": 60 * 60 * 6,  # Every 6 hours
        "options": {"queue": "reconciliation"}
    },
    "reconcile-active-tweets": {
        "task": "reconcile_active_tweets",
        "schedule": crontab(hour=0, minute=0),  # Daily at 00:00 UTC
        "options": {"queue": "reconciliation"}
    },
}

@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    from app.core.logging import setup_logging
    setup_logging()
