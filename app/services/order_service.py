from datetime import timedelta
from decimal import Decimal
import logging
from typing import Iterable, Optional

from sqlalchemy import func, update

from models import db, utcnow
from models.order import (
    Order, OrderItem, OrderSequence, OrderStatusLog, OrderActionLog,
    ORDER_STATUSES, SHIPPING_METHODS,
)
from app.services.exceptions import (
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.services.ledger import ZERO, to_money
from app.utils.db import insert_ignore
from app.metrics import ORDERS_CREATED

logger = logging.getLogger(__name__)

ESTIMATED_DELIVERY_DAYS = {"free": 10, "standard": 5, "express": 2}
TERMINAL_STATUSES = ("delivered", "cancelled")


class OrderRepository:
    """Persistence seam for orders; every state change is a conditional UPDATE."""

    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, order_id, *, refresh=False) -> Optional[Order]:
        return self.session.get(Order, order_id, populate_existing=refresh)

    def get_or_404(self, order_id, *, refresh=False) -> Order:
        order = self.get(order_id, refresh=refresh)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    def allocate_number(self, now=None) -> str:
        """Next ``ORD-YYMMDD-NNNN`` for the calendar day of ``now``.

        The counter row stays write-locked by this transaction until commit.
        """
        now = now or utcnow()
        day = now.strftime("%y%m%d")
        insert_ignore(OrderSequence, {"day": day, "last_value": 0}, self.session)
        self.session.execute(
            update(OrderSequence)
            .where(OrderSequence.day == day)
            .values(last_value=OrderSequence.last_value + 1)
            .execution_options(synchronize_session=False)
        )
        seq = self.session.execute(
            db.select(OrderSequence.last_value).where(OrderSequence.day == day)
        ).scalar_one()
        return f"ORD-{day}-{seq:04d}"

    def _conditional_update(self, order_id, where, values) -> bool:
        result = self.session.execute(
            update(Order)
            .where(Order.id == order_id, *where)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def transition(self, order_id, allowed_from: Iterable[str], to_status: str, **extra) -> bool:
        return self._conditional_update(
            order_id, [Order.status.in_(tuple(allowed_from))], dict(status=to_status, **extra)
        )

    def mark_escrow_credited(self, order_id) -> bool:
        return self._conditional_update(
            order_id,
            [Order.escrow_credited.is_(False), Order.escrow_status == "held"],
            {"escrow_credited": True},
        )

    def claim_escrow(self, order_id, target: str, now=None) -> bool:
        """Flip escrow held -> released|refunded. False when it was not held."""
        now = now or utcnow()
        values = {"escrow_status": target}
        if target == "released":
            values["escrow_release_date"] = now
        elif target == "refunded":
            values["escrow_refund_date"] = now
            values["payment_status"] = "refunded"
        else:
            raise ValidationError(f"Invalid escrow status {target}")
        return self._conditional_update(order_id, [Order.escrow_status == "held"], values)

    def log_status(self, order_id, status, actor_id):
        self.session.add(OrderStatusLog(order_id=order_id, status=status, updated_by=str(actor_id)))

    def log_action(self, order_id, action_type, actor_id, details=None):
        self.session.add(OrderActionLog(
            order_id=order_id,
            action_type=action_type,
            actor_id=str(actor_id),
            details=details,
        ))

    def _page(self, query, page, limit):
        total = query.order_by(None).count()
        rows = query.offset((page - 1) * limit).limit(limit).all()
        return rows, total

    def for_customer(self, customer_id, *, status=None, page=1, limit=10):
        q = Order.query.filter_by(customer_id=customer_id)
        if status:
            q = q.filter(Order.status == status)
        return self._page(q.order_by(Order.created_at.desc(), Order.id.desc()), page, limit)

    def for_vendor(self, vendor_id, *, status=None, page=1, limit=10):
        q = Order.query.filter(Order.items.any(OrderItem.vendor_id == vendor_id))
        if status:
            q = q.filter(Order.status == status)
        return self._page(q.order_by(Order.created_at.desc(), Order.id.desc()), page, limit)

    def paginate(self, *, status=None, page=1, limit=20):
        q = Order.query
        if status:
            q = q.filter(Order.status == status)
        return self._page(q.order_by(Order.created_at.desc(), Order.id.desc()), page, limit)

    def status_counts(self):
        rows = self.session.execute(
            db.select(Order.status, func.count(Order.id)).group_by(Order.status)
        ).all()
        counts = {status: 0 for status in ORDER_STATUSES}
        counts.update({status: n for status, n in rows})
        return counts

    def held_escrow_total(self):
        total = self.session.execute(
            db.select(func.coalesce(func.sum(Order.escrow_amount), 0)).where(Order.escrow_status == "held")
        ).scalar_one()
        return to_money(total)


def _clean_items(items):
    if not items:
        raise ValidationError("Order must contain at least one item")
    cleaned = []
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Invalid order item")
        product_id = raw.get("product_id")
        vendor_id = raw.get("vendor_id")
        if not product_id or not vendor_id:
            raise ValidationError("Each item needs a product_id and vendor_id")
        try:
            quantity = int(raw.get("quantity", 1))
        except (TypeError, ValueError):
            raise ValidationError("Invalid quantity")
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        unit_price = to_money(raw.get("unit_price"))
        if unit_price < ZERO:
            raise ValidationError("Unit price cannot be negative")
        cleaned.append({
            "product_id": str(product_id),
            "vendor_id": str(vendor_id),
            "title": raw.get("title"),
            "quantity": quantity,
            "unit_price": unit_price,
        })
    return cleaned


class OrderService:
    def __init__(self, orders: OrderRepository, settlement, inventory, *, refund_on_cancel=False):
        self.orders = orders
        self.settlement = settlement
        self.inventory = inventory
        self.refund_on_cancel = refund_on_cancel

    def create_order(self, customer_id, items, *, shipping_method="standard", shipping_address=None,
                     order_notes=None, subtotal=None, shipping_cost=0, tax=0, total=None,
                     payment_status="pending", now=None) -> Order:
        """Persist a pending order with its escrow held and vendors' pending balances credited.

        Totals come from checkout; the escrow amount is fixed to ``total`` and must
        cover the sum of vendor shares.
        """
        now = now or utcnow()
        if shipping_method not in SHIPPING_METHODS:
            raise ValidationError("Invalid shipping method")
        lines = _clean_items(items)
        items_total = sum((line["unit_price"] * line["quantity"] for line in lines), Decimal("0.00"))
        subtotal = items_total if subtotal is None else to_money(subtotal)
        if subtotal != items_total:
            raise ValidationError("Subtotal does not match order items")
        shipping_cost = to_money(shipping_cost or 0)
        tax = to_money(tax or 0)
        if shipping_cost < ZERO or tax < ZERO:
            raise ValidationError("Shipping cost and tax cannot be negative")
        total = subtotal + shipping_cost + tax if total is None else to_money(total)
        if total < items_total:
            raise ValidationError("Order total is less than the sum of vendor shares")

        order_number = self.orders.allocate_number(now)
        order = Order(
            order_number=order_number,
            customer_id=str(customer_id),
            status="pending",
            escrow_status="held",
            escrow_amount=total,
            escrow_credited=False,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            tax=tax,
            total=total,
            shipping_method=shipping_method,
            shipping_address=shipping_address,
            order_notes=order_notes,
            estimated_delivery=now + timedelta(days=ESTIMATED_DELIVERY_DAYS[shipping_method]),
            payment_status=payment_status,
            is_paid=payment_status == "completed",
            created_at=now,
        )
        order.items = [OrderItem(**line) for line in lines]
        self.orders.session.add(order)
        self.orders.session.flush()

        self.orders.log_status(order.id, "pending", customer_id)
        self.orders.log_action(order.id, "order_created", customer_id, f"Order {order_number} placed")
        self.settlement.credit_order(order, actor_id=customer_id)
        ORDERS_CREATED.inc()
        logger.info("Order %s created for customer %s, escrow %s", order_number, customer_id, total)
        return order

    def get_for_customer(self, order_id, customer_id) -> Order:
        order = self.orders.get(order_id)
        if order is None or order.customer_id != str(customer_id):
            raise NotFoundError("Order not found")
        return order

    def get_for_vendor(self, order_id, vendor_id) -> Order:
        order = self.orders.get_or_404(order_id)
        if not order.has_vendor(str(vendor_id)):
            raise NotFoundError("Order not found")
        return order

    def cancel_order(self, order_id, customer_id, now=None) -> Order:
        order = self.get_for_customer(order_id, customer_id)
        if not self.orders.transition(order.id, ("pending",), "cancelled"):
            raise StateConflictError("Only pending orders can be cancelled")
        self.inventory.restore(order.items)
        self.orders.log_status(order.id, "cancelled", customer_id)
        self.orders.log_action(order.id, "order_cancelled", customer_id, "Cancelled by customer")
        if self.refund_on_cancel and order.escrow_status == "held":
            self.settlement.refund(order.id, customer_id, reason="Cancelled by customer", now=now)
        return self.orders.get(order.id, refresh=True)

    def add_tracking(self, order_id, vendor_id, tracking_number, tracking_url=None) -> Order:
        """Vendor path to ``shipped``; independent of proof approval."""
        order = self.get_for_vendor(order_id, vendor_id)
        if not tracking_number:
            raise ValidationError("Tracking number is required")
        moved = self.orders.transition(
            order.id, ("pending", "processing"), "shipped",
            tracking_number=tracking_number, tracking_url=tracking_url,
        )
        if not moved:
            raise StateConflictError(f"Cannot add tracking to a {order.status} order")
        self.orders.log_status(order.id, "shipped", vendor_id)
        self.orders.log_action(order.id, "tracking_added", vendor_id, f"Tracking {tracking_number}")
        return self.orders.get(order.id, refresh=True)

    def update_status(self, order_id, status, actor_id, now=None) -> Order:
        """Admin status change. Delivering releases a held escrow in the same transaction."""
        if status not in ORDER_STATUSES:
            raise ValidationError("Invalid status")
        order = self.orders.get_or_404(order_id)
        current = order.status
        if current in TERMINAL_STATUSES:
            raise StateConflictError(f"Order is already {current}")
        if current == status:
            raise StateConflictError(f"Order is already {status}")
        if not self.orders.transition(order.id, (current,), status):
            raise StateConflictError("Order status changed concurrently, reload and retry")
        self.orders.log_status(order.id, status, actor_id)
        self.orders.log_action(order.id, "status_updated", actor_id, f"{current} -> {status}")
        if status == "delivered" and order.escrow_status == "held":
            self.settlement.release(order.id, actor_id, reason="Order delivered", now=now)
        return self.orders.get(order.id, refresh=True)
