from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, CheckConstraint
from models import db, BIGINT, MONEY, utcnow

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
ESCROW_STATUSES = ("held", "released", "refunded")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")
SHIPPING_METHODS = ("free", "standard", "express")

TWOPLACES = Decimal("0.01")


def _money(value):
    if value is None:
        return None
    return float(value)


class Order(db.Model):
    __tablename__ = "order"
    __table_args__ = (
        db.Index("ix_order_customer_created", "customer_id", "created_at"),
        db.Index("ix_order_status", "status"),
        CheckConstraint("escrow_amount >= 0", name="ck_order_escrow_non_negative"),
    )
    id = Column(BIGINT, primary_key=True)
    order_number = Column(String(20), unique=True, nullable=False)
    customer_id = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    escrow_status = Column(String(20), nullable=False, default="held")
    escrow_amount = Column(MONEY, nullable=False)
    escrow_release_date = Column(DateTime, nullable=True)
    escrow_refund_date = Column(DateTime, nullable=True)
    # flipped false -> true exactly once when vendor pending balances are credited
    escrow_credited = Column(Boolean, nullable=False, default=False)
    subtotal = Column(MONEY, nullable=False)
    shipping_cost = Column(MONEY, nullable=False, default=0)
    tax = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False)
    shipping_method = Column(String(10), nullable=False, default="standard")
    shipping_address = Column(db.JSON, nullable=True)
    order_notes = Column(Text, nullable=True)
    estimated_delivery = Column(DateTime, nullable=True)
    tracking_number = Column(String(100), nullable=True)
    tracking_url = Column(String(500), nullable=True)
    is_paid = Column(Boolean, default=False)
    payment_status = Column(String(20), default="pending")
    payment_transaction_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem", backref="order", cascade="all, delete-orphan", lazy=True,
        order_by="OrderItem.id",
    )
    delivery_proof = db.relationship("DeliveryProof", back_populates="order", uselist=False, lazy=True)

    @property
    def delivery_proof_id(self):
        return self.delivery_proof.id if self.delivery_proof else None

    @property
    def item_count(self):
        return sum(oi.quantity for oi in self.items)

    def vendor_shares(self):
        """Escrow share per vendor: sum of price * quantity over that vendor's items."""
        shares = OrderedDict()
        for oi in self.items:
            shares[oi.vendor_id] = shares.get(oi.vendor_id, Decimal("0.00")) + oi.line_total
        return OrderedDict(
            (vendor_id, amount.quantize(TWOPLACES, rounding=ROUND_HALF_UP))
            for vendor_id, amount in shares.items()
        )

    def has_vendor(self, vendor_id):
        return any(oi.vendor_id == vendor_id for oi in self.items)

    def escrow_snapshot(self):
        return {
            "escrow_status": self.escrow_status,
            "escrow_amount": _money(self.escrow_amount),
            "escrow_release_date": self.escrow_release_date.isoformat() if self.escrow_release_date else None,
            "escrow_refund_date": self.escrow_refund_date.isoformat() if self.escrow_refund_date else None,
            "vendor_shares": {k: float(v) for k, v in self.vendor_shares().items()},
        }

    def to_dict(self, include_items=True):
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "is_paid": self.is_paid,
            "subtotal": _money(self.subtotal),
            "shipping_cost": _money(self.shipping_cost),
            "tax": _money(self.tax),
            "total": _money(self.total),
            "shipping_method": self.shipping_method,
            "shipping_address": self.shipping_address,
            "order_notes": self.order_notes,
            "estimated_delivery": self.estimated_delivery.isoformat() if self.estimated_delivery else None,
            "tracking_number": self.tracking_number,
            "tracking_url": self.tracking_url,
            "delivery_proof_id": self.delivery_proof_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        data.update(self.escrow_snapshot())
        if include_items:
            data["items"] = [oi.to_dict() for oi in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_item"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_item_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_order_item_price"),
        db.Index("ix_order_item_vendor", "vendor_id"),
    )
    id = Column(BIGINT, primary_key=True)
    order_id = Column(BIGINT, ForeignKey("order.id"), nullable=False)
    product_id = Column(String(64), nullable=False)
    vendor_id = Column(String(64), nullable=False)
    title = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(MONEY, nullable=False)

    @property
    def line_total(self):
        return Decimal(str(self.unit_price)) * Decimal(self.quantity)

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "vendor_id": self.vendor_id,
            "title": self.title,
            "quantity": self.quantity,
            "unit_price": float(self.unit_price),
            "subtotal": float(self.line_total),
        }


class OrderSequence(db.Model):
    """Per-day order counter; one row per YYMMDD."""
    __tablename__ = "order_sequence"
    day = Column(String(6), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


class OrderStatusLog(db.Model):
    __tablename__ = "order_status_log"
    id = Column(BIGINT, primary_key=True)
    order_id = Column(BIGINT, ForeignKey("order.id"), nullable=False)
    status = Column(String(30), nullable=False)
    updated_by = Column(String(64), nullable=False)
    timestamp = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "order_id": self.order_id,
            "status": self.status,
            "updated_by": self.updated_by,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


class OrderActionLog(db.Model):
    __tablename__ = "order_action_log"
    id = Column(BIGINT, primary_key=True)
    order_id = Column(BIGINT, ForeignKey("order.id"), nullable=False)
    action_type = Column(String(50), nullable=False)  # escrow_credited, escrow_released, tracking_added, ...
    actor_id = Column(String(64), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "order_id": self.order_id,
            "action_type": self.action_type,
            "actor_id": self.actor_id,
            "details": self.details,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
