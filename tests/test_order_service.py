from datetime import datetime, timedelta
from decimal import Decimal
import pytest

from models import db
from models.order import Order, OrderActionLog, OrderStatusLog
from app.services.exceptions import NotFoundError, StateConflictError, ValidationError
from app.utils.db import transactional


class RecordingInventory:
    def __init__(self):
        self.restored = []

    def restore(self, items):
        self.restored.extend((oi.product_id, oi.quantity) for oi in items)


def _order(services, order_id):
    return services.orders.get(order_id, refresh=True)


def _pending(services, vendor_id):
    return services.ledger.vendor_balance(vendor_id, refresh=True).pending_balance


def test_create_holds_escrow_and_credits_vendors(services, place_order):
    now = datetime(2026, 10, 17, 9, 30)
    order_id = place_order(
        lines=(("v1", "40.00", 2), ("v2", "40.00", 1)),
        shipping_cost="10.00", tax="5.00", shipping_method="express", now=now,
    )
    order = _order(services, order_id)
    assert order.order_number == "ORD-261017-0001"
    assert order.status == "pending"
    assert order.escrow_status == "held"
    assert order.escrow_credited is True
    assert order.total == Decimal("135.00")
    assert order.escrow_amount == order.total
    assert order.estimated_delivery == now + timedelta(days=2)
    assert order.vendor_shares() == {"v1": Decimal("80.00"), "v2": Decimal("40.00")}
    assert _pending(services, "v1") == Decimal("80.00")
    assert _pending(services, "v2") == Decimal("40.00")
    assert OrderStatusLog.query.filter_by(order_id=order_id, status="pending").count() == 1


def test_order_numbers_are_sequential_per_day(services, place_order):
    day1 = datetime(2026, 10, 17, 23, 59)
    day2 = datetime(2026, 10, 18, 0, 1)
    first = place_order(now=day1)
    second = place_order(now=day1)
    third = place_order(now=day2)
    assert _order(services, first).order_number == "ORD-261017-0001"
    assert _order(services, second).order_number == "ORD-261017-0002"
    assert _order(services, third).order_number == "ORD-261018-0001"


def test_total_below_vendor_shares_is_rejected(services, place_order):
    with pytest.raises(ValidationError):
        place_order(lines=(("v1", "80.00", 1),), total="79.99")
    assert Order.query.count() == 0
    assert services.ledger.vendor_balance("v1") is None


def test_subtotal_must_match_items(services, place_order):
    with pytest.raises(ValidationError):
        place_order(lines=(("v1", "80.00", 1),), subtotal="70.00")


@pytest.mark.parametrize("items", [
    [],
    [{"product_id": "p", "vendor_id": "v", "unit_price": "1.00", "quantity": 0}],
    [{"product_id": "p", "unit_price": "1.00", "quantity": 1}],
    [{"product_id": "p", "vendor_id": "v", "unit_price": "-1.00", "quantity": 1}],
    ["not-a-dict"],
])
def test_invalid_items_are_rejected(services, items):
    with pytest.raises(ValidationError):
        services.order_service.create_order("c1", items)
    db.session.rollback()


def test_credit_runs_once(services, place_order):
    order_id = place_order(lines=(("v1", "30.00", 1),))
    order = _order(services, order_id)
    with transactional():
        assert services.settlement.credit_order(order) is False
    assert _pending(services, "v1") == Decimal("30.00")


def test_cancel_pending_order_restores_inventory(services, place_order, monkeypatch):
    inventory = RecordingInventory()
    monkeypatch.setattr(services.order_service, "inventory", inventory)
    order_id = place_order(customer_id="c1", lines=(("v1", "30.00", 3),))
    with transactional():
        order = services.order_service.cancel_order(order_id, "c1")
    assert order.status == "cancelled"
    assert inventory.restored == [("p0", 3)]
    # escrow stays held unless refund on cancel is enabled
    assert order.escrow_status == "held"
    assert _pending(services, "v1") == Decimal("30.00")


def test_cancel_refunds_when_enabled(services, place_order, monkeypatch):
    monkeypatch.setattr(services.order_service, "refund_on_cancel", True)
    order_id = place_order(customer_id="c1", lines=(("v1", "30.00", 1),))
    with transactional():
        order = services.order_service.cancel_order(order_id, "c1")
    assert order.escrow_status == "refunded"
    assert order.payment_status == "refunded"
    assert _pending(services, "v1") == Decimal("0.00")


def test_cancel_rules(services, place_order):
    order_id = place_order(customer_id="c1")
    with pytest.raises(NotFoundError):
        services.order_service.cancel_order(order_id, "someone-else")
    with transactional():
        services.order_service.update_status(order_id, "processing", "admin")
    with pytest.raises(StateConflictError):
        services.order_service.cancel_order(order_id, "c1")
    db.session.rollback()


def test_tracking_ships_order(services, place_order):
    order_id = place_order(lines=(("v1", "10.00", 1),))
    with pytest.raises(NotFoundError):
        services.order_service.add_tracking(order_id, "v2", "TRK1")
    with transactional():
        order = services.order_service.add_tracking(order_id, "v1", "TRK1", "https://track.example/TRK1")
    assert order.status == "shipped"
    assert order.tracking_number == "TRK1"
    with pytest.raises(StateConflictError):
        services.order_service.add_tracking(order_id, "v1", "TRK2")
    db.session.rollback()
    assert OrderActionLog.query.filter_by(order_id=order_id, action_type="tracking_added").count() == 1


def test_delivered_releases_escrow(services, place_order):
    order_id = place_order(lines=(("v1", "80.00", 1), ("v2", "40.00", 1)))
    with transactional():
        order = services.order_service.update_status(order_id, "delivered", "admin")
    assert order.status == "delivered"
    assert order.escrow_status == "released"
    assert order.escrow_release_date is not None
    for vendor_id, amount in (("v1", "80.00"), ("v2", "40.00")):
        bal = services.ledger.vendor_balance(vendor_id, refresh=True)
        assert bal.pending_balance == Decimal("0.00")
        assert bal.available_balance == Decimal(amount)


def test_terminal_statuses_reject_transitions(services, place_order):
    order_id = place_order()
    with transactional():
        services.order_service.update_status(order_id, "delivered", "admin")
    for status in ("pending", "cancelled", "shipped"):
        with pytest.raises(StateConflictError):
            services.order_service.update_status(order_id, status, "admin")
    with pytest.raises(ValidationError):
        services.order_service.update_status(order_id, "lost", "admin")
    db.session.rollback()


def test_same_status_is_a_conflict(services, place_order):
    order_id = place_order()
    with pytest.raises(StateConflictError):
        services.order_service.update_status(order_id, "pending", "admin")
    db.session.rollback()


def test_delivering_refunded_order_keeps_balances(services, place_order):
    order_id = place_order(lines=(("v1", "50.00", 1),))
    with transactional():
        services.settlement.refund(order_id, "admin", reason="fraud")
    with transactional():
        order = services.order_service.update_status(order_id, "delivered", "admin")
    assert order.escrow_status == "refunded"
    bal = services.ledger.vendor_balance("v1", refresh=True)
    assert bal.available_balance == Decimal("0.00")
    assert bal.pending_balance == Decimal("0.00")
