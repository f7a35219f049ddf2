import logging
from celery import shared_task
from flask import current_app

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def notify_proof_reviewed_task(self, vendor_id: str, order_number: str, status: str) -> None:
    """Log the review outcome instead of emailing the vendor."""
    logger.info("[notify] vendor %s: proof for %s is %s", vendor_id, order_number, status)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def notify_escrow_released_task(self, order_number: str, vendor_shares: dict) -> None:
    for vendor_id, amount in vendor_shares.items():
        logger.info("[notify] vendor %s: %s released from escrow for %s", vendor_id, amount, order_number)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def notify_payout_task(self, vendor_id: str, amount: str, status: str) -> None:
    logger.info("[notify] vendor %s: payout of %s is %s", vendor_id, amount, status)


def dispatch(task, *args):
    """Run inline under TESTING, otherwise hand off to the broker."""
    if current_app.config.get("TESTING"):
        task(*args)
    else:
        task.delay(*args)
