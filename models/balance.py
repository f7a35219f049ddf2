from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, CheckConstraint
from models import db, BIGINT, MONEY, utcnow


def _iso(value):
    return value.isoformat() if value else None


class VendorBalance(db.Model):
    __tablename__ = "vendor_balance"
    __table_args__ = (
        CheckConstraint("available_balance >= 0", name="ck_vendor_available_non_negative"),
        CheckConstraint("pending_balance >= 0", name="ck_vendor_pending_non_negative"),
    )
    id = Column(Integer, primary_key=True)
    vendor_id = Column(String(64), unique=True, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_account.id"), nullable=True)
    total_earnings = Column(MONEY, nullable=False, default=0)
    available_balance = Column(MONEY, nullable=False, default=0)
    pending_balance = Column(MONEY, nullable=False, default=0)
    total_payouts = Column(MONEY, nullable=False, default=0)
    last_payout = Column(DateTime, nullable=True)
    last_payout_amount = Column(MONEY, nullable=False, default=0)
    minimum_payout_amount = Column(MONEY, nullable=False, default=10)
    commission_rate = Column(db.Numeric(4, 3), nullable=False, default=0.15)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    bank_account = db.relationship("BankAccount", lazy=True)

    @property
    def total_balance(self):
        return self.available_balance + self.pending_balance

    def to_dict(self):
        bank = self.bank_account
        return {
            "vendor_id": self.vendor_id,
            "total_earnings": float(self.total_earnings),
            "available_balance": float(self.available_balance),
            "pending_balance": float(self.pending_balance),
            "total_balance": float(self.total_balance),
            "total_payouts": float(self.total_payouts),
            "last_payout": _iso(self.last_payout),
            "last_payout_amount": float(self.last_payout_amount),
            "minimum_payout_amount": float(self.minimum_payout_amount),
            "commission_rate": float(self.commission_rate),
            "is_active": self.is_active,
            "bank_account": {
                "card_holder_name": bank.card_holder_name,
                "bank_name": bank.bank_name,
                "is_active": bank.is_active,
            } if bank else None,
        }


class CustomerBalance(db.Model):
    __tablename__ = "customer_balance"
    __table_args__ = (
        CheckConstraint("spending_balance >= 0", name="ck_customer_spending_non_negative"),
    )
    id = Column(Integer, primary_key=True)
    customer_id = Column(String(64), unique=True, nullable=False)
    spending_balance = Column(MONEY, nullable=False, default=1000000)
    total_spent = Column(MONEY, nullable=False, default=0)
    last_transaction = Column(DateTime, default=utcnow)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "customer_id": self.customer_id,
            "spending_balance": float(self.spending_balance),
            "total_spent": float(self.total_spent),
            "last_transaction": _iso(self.last_transaction),
            "is_active": self.is_active,
        }


class BalanceTransaction(db.Model):
    __tablename__ = "balance_transaction"
    __table_args__ = (
        db.Index("ix_balance_txn_owner", "owner_type", "owner_id", "created_at"),
    )
    id = Column(BIGINT, primary_key=True)
    owner_type = Column(String(10), nullable=False)  # vendor, customer
    owner_id = Column(String(64), nullable=False)
    pool = Column(String(20), nullable=False)  # pending, available, spending
    type = Column(String(30), nullable=False)  # pending_credit, escrow_release, escrow_refund, payout, earnings, deduct, add
    amount = Column(MONEY, nullable=False)
    order_id = Column(BIGINT, nullable=True)
    reference = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "owner_type": self.owner_type,
            "owner_id": self.owner_id,
            "pool": self.pool,
            "type": self.type,
            "amount": float(self.amount),
            "order_id": self.order_id,
            "reference": self.reference,
            "created_at": _iso(self.created_at),
        }
