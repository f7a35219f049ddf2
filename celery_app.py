import os
import logging
from celery import Celery
from celery.signals import task_failure, task_retry, task_success

logger = logging.getLogger(__name__)

NOTIFY_QUEUE = os.environ.get("CELERY_NOTIFY_QUEUE", "settlement-notify")

celery_app = Celery(
    "escrow_settlement",
    broker=os.environ.get("CELERY_BROKER_URL", "memory://"),
    backend=os.environ.get("CELERY_RESULT_BACKEND", "cache+memory://"),
    include=["app.tasks.notifications"],
)
celery_app.conf.update(
    task_always_eager=os.environ.get("CELERY_TASK_ALWAYS_EAGER", "0") == "1",
    task_eager_propagates=True,
    task_store_eager_result=False,
    task_ignore_result=True,
    task_acks_late=True,
    task_default_queue=NOTIFY_QUEUE,
    task_routes={"app.tasks.notifications.*": {"queue": NOTIFY_QUEUE}},
)


@task_success.connect
def _log_success(sender=None, **kwargs):
    logger.debug("Task %s done", getattr(sender, "name", sender))


@task_failure.connect
def _log_failure(sender=None, task_id=None, exception=None, **kwargs):
    logger.error("Notification task %s (%s) failed: %s", getattr(sender, "name", "?"), task_id, exception)


@task_retry.connect
def _log_retry(sender=None, request=None, reason=None, **kwargs):
    logger.warning("Notification task %s retrying: %s", getattr(sender, "name", "?"), reason)
