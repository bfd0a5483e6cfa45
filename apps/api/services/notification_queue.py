"""Notification job queue helpers (Redis/RQ)."""

from __future__ import annotations

from redis import Redis
from rq import Queue
from rq.job import Job

from config import settings
from services.notifications import Notification


NOTIFICATION_QUEUE_NAME = "notifications"


def get_redis_connection() -> Redis:
    """Build Redis connection used by RQ."""
    return Redis.from_url(settings.REDIS_URL)


def get_notification_queue() -> Queue:
    """Return the configured notification queue."""
    return Queue(
        name=NOTIFICATION_QUEUE_NAME,
        connection=get_redis_connection(),
        default_timeout=int(settings.NOTIFIER_TIMEOUT_SECONDS) + 30,
    )


def enqueue_notification(notification: Notification) -> Job:
    """Enqueue a single delivery; failed jobs are kept for inspection, not retried."""
    queue = get_notification_queue()
    return queue.enqueue(
        "services.notifications.deliver_notification_job",
        notification.to_dict(),
        job_timeout=int(settings.NOTIFIER_TIMEOUT_SECONDS) + 30,
        result_ttl=86400,
        failure_ttl=86400,
    )
