"""Escrow settlement: hold -> pending credit -> release or refund.

Release and refund first claim the order's escrow transition with a conditional
``held -> released|refunded`` update. That row is the completion marker: a
second call finds nothing held and raises ``EscrowNotHeld``. The per-vendor
fan-out then runs in the same database transaction, which the caller commits
or rolls back as a whole.
"""
import logging

from models import utcnow
from app.metrics import ESCROW_AMOUNT, ESCROW_EVENTS
from app.services.exceptions import EscrowNotHeld
from app.services.ledger import BalanceLedger
from app.services.order_service import OrderRepository
from app.telemetry import settlement_span

logger = logging.getLogger(__name__)


class SettlementCoordinator:
    def __init__(self, orders: OrderRepository, ledger: BalanceLedger):
        self.orders = orders
        self.ledger = ledger

    def credit_order(self, order, actor_id="system") -> bool:
        """Credit every vendor's pending balance for ``order``. Runs at most once per order."""
        with settlement_span("escrow.credit_pending", order_id=order.id):
            if not self.orders.mark_escrow_credited(order.id):
                logger.info("Escrow for order %s already credited, skipping", order.order_number)
                return False
            shares = order.vendor_shares()
            for vendor_id, share in shares.items():
                self.ledger.credit_pending(vendor_id, share, order_id=order.id)
            self.orders.log_action(
                order.id, "escrow_credited", actor_id,
                ", ".join(f"{v}={s}" for v, s in shares.items()),
            )
        ESCROW_EVENTS.labels("credited").inc()
        ESCROW_AMOUNT.labels("credited").inc(float(sum(shares.values())))
        return True

    def release(self, order_id, actor_id, reason=None, now=None):
        """Move each vendor's share from pending to available and credit earnings."""
        now = now or utcnow()
        with settlement_span("escrow.release", order_id=order_id, actor=actor_id):
            order = self.orders.get_or_404(order_id, refresh=True)
            if not self.orders.claim_escrow(order.id, "released", now):
                raise EscrowNotHeld(f"Escrow for order {order.order_number} is not held")
            shares = order.vendor_shares()
            for vendor_id, share in shares.items():
                self.ledger.release_share(vendor_id, share, order_id=order.id)
                logger.info("Released %s to vendor %s for order %s", share, vendor_id, order.order_number)
            self.orders.log_action(order.id, "escrow_released", actor_id, reason or "Escrow released")
        ESCROW_EVENTS.labels("released").inc()
        ESCROW_AMOUNT.labels("released").inc(float(sum(shares.values())))
        return self.orders.get(order.id, refresh=True)

    def refund(self, order_id, actor_id, reason=None, now=None):
        """Reverse the pending credits of a held order; nothing becomes withdrawable."""
        now = now or utcnow()
        with settlement_span("escrow.refund", order_id=order_id, actor=actor_id):
            order = self.orders.get_or_404(order_id, refresh=True)
            if not self.orders.claim_escrow(order.id, "refunded", now):
                raise EscrowNotHeld(f"Escrow for order {order.order_number} is not held")
            if order.escrow_credited:
                for vendor_id, share in order.vendor_shares().items():
                    self.ledger.refund_share(vendor_id, share, order_id=order.id)
            self.orders.log_action(order.id, "escrow_refunded", actor_id, reason or "Escrow refunded")
        logger.info("Refunded escrow of order %s (%s)", order.order_number, reason)
        ESCROW_EVENTS.labels("refunded").inc()
        return self.orders.get(order.id, refresh=True)
