from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging

from flask import current_app, has_app_context
from sqlalchemy import case, update

from models import db, utcnow
from models.balance import VendorBalance, CustomerBalance, BalanceTransaction
from models.bank import BankAccount
from app.utils.db import insert_ignore
from app.services.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
MIN_PAYOUT_FLOOR = Decimal("1.00")
MIN_PAYOUT_CEILING = Decimal("1000.00")


def to_money(value) -> Decimal:
    try:
        d = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Invalid amount")
    if not d.is_finite():
        raise ValidationError("Invalid amount")
    return d.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def positive_money(value) -> Decimal:
    amount = to_money(value)
    if amount <= ZERO:
        raise ValidationError("Amount must be greater than 0")
    return amount


def _setting(name, default):
    if has_app_context():
        return current_app.config.get(name, default)
    return default


class BalanceLedger:
    """Mutation primitives for vendor and customer balances.

    Every mutation is a single conditional ``UPDATE`` with its guard in the
    ``WHERE`` clause, so concurrent callers never lose an update. Nothing here
    commits; the caller owns the transaction.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # -- row creation -------------------------------------------------

    def ensure_vendor_balance(self, vendor_id: str) -> None:
        insert_ignore(VendorBalance, {
            "vendor_id": vendor_id,
            "minimum_payout_amount": to_money(_setting("DEFAULT_MINIMUM_PAYOUT", "10.00")),
        }, self.session)

    def ensure_customer_balance(self, customer_id: str) -> None:
        insert_ignore(CustomerBalance, {
            "customer_id": customer_id,
            "spending_balance": to_money(_setting("CUSTOMER_STARTING_BALANCE", "1000000.00")),
        }, self.session)

    # -- reads --------------------------------------------------------

    def vendor_balance(self, vendor_id: str, *, refresh=False):
        q = VendorBalance.query
        if refresh:
            q = q.populate_existing()
        return q.filter_by(vendor_id=vendor_id).first()

    def customer_balance(self, customer_id: str, *, create=True):
        if create:
            self.ensure_customer_balance(customer_id)
        return CustomerBalance.query.populate_existing().filter_by(customer_id=customer_id).first()

    def _journal(self, owner_type, owner_id, pool, type, amount, *, order_id=None, reference=None):
        self.session.add(BalanceTransaction(
            owner_type=owner_type,
            owner_id=owner_id,
            pool=pool,
            type=type,
            amount=amount,
            order_id=order_id,
            reference=reference,
        ))

    def _execute(self, stmt):
        return self.session.execute(stmt.execution_options(synchronize_session=False))

    # -- vendor pools ---------------------------------------------------

    def credit_pending(self, vendor_id: str, amount, *, order_id=None) -> VendorBalance:
        amount = to_money(amount)
        self.ensure_vendor_balance(vendor_id)
        self._execute(
            update(VendorBalance)
            .where(VendorBalance.vendor_id == vendor_id)
            .values(pending_balance=VendorBalance.pending_balance + amount)
        )
        self._journal("vendor", vendor_id, "pending", "pending_credit", amount,
                      order_id=order_id, reference="Escrow hold")
        logger.info("Credited %s to pending balance of vendor %s", amount, vendor_id)
        return self.vendor_balance(vendor_id, refresh=True)

    def release_share(self, vendor_id: str, share, *, order_id=None) -> VendorBalance:
        """Move one vendor's escrow share from pending to available."""
        share = to_money(share)
        self.ensure_vendor_balance(vendor_id)
        self._execute(
            update(VendorBalance)
            .where(VendorBalance.vendor_id == vendor_id)
            .values(
                pending_balance=case(
                    (VendorBalance.pending_balance > share, VendorBalance.pending_balance - share),
                    else_=ZERO,
                ),
                available_balance=VendorBalance.available_balance + share,
                total_earnings=VendorBalance.total_earnings + share,
            )
        )
        self._journal("vendor", vendor_id, "available", "escrow_release", share,
                      order_id=order_id, reference="Escrow released")
        return self.vendor_balance(vendor_id, refresh=True)

    def refund_share(self, vendor_id: str, share, *, order_id=None) -> VendorBalance:
        """Reverse a pending credit; available balance and earnings are untouched."""
        share = to_money(share)
        self.ensure_vendor_balance(vendor_id)
        self._execute(
            update(VendorBalance)
            .where(VendorBalance.vendor_id == vendor_id)
            .values(
                pending_balance=case(
                    (VendorBalance.pending_balance > share, VendorBalance.pending_balance - share),
                    else_=ZERO,
                ),
            )
        )
        self._journal("vendor", vendor_id, "pending", "escrow_refund", -share,
                      order_id=order_id, reference="Escrow refunded")
        return self.vendor_balance(vendor_id, refresh=True)

    def debit_available(self, vendor_id: str, amount, *, reference=None, now=None) -> VendorBalance:
        amount = positive_money(amount)
        now = now or utcnow()
        result = self._execute(
            update(VendorBalance)
            .where(
                VendorBalance.vendor_id == vendor_id,
                VendorBalance.available_balance >= amount,
            )
            .values(
                available_balance=VendorBalance.available_balance - amount,
                total_payouts=VendorBalance.total_payouts + amount,
                last_payout=now,
                last_payout_amount=amount,
            )
        )
        if result.rowcount == 0:
            if self.vendor_balance(vendor_id) is None:
                raise NotFoundError("Vendor balance not found")
            raise InsufficientBalanceError("Insufficient available balance")
        self._journal("vendor", vendor_id, "available", "payout", -amount, reference=reference)
        logger.info("Debited %s from available balance of vendor %s", amount, vendor_id)
        return self.vendor_balance(vendor_id, refresh=True)

    def add_earnings(self, vendor_id: str, amount, *, reference=None) -> VendorBalance:
        """Demo credit path: straight into available balance and total earnings."""
        amount = positive_money(amount)
        bank = BankAccount.query.filter_by(user_id=vendor_id, is_active=True).first()
        if not bank:
            raise ValidationError("Please connect your bank account first")
        self.ensure_vendor_balance(vendor_id)
        self._execute(
            update(VendorBalance)
            .where(VendorBalance.vendor_id == vendor_id)
            .values(
                available_balance=VendorBalance.available_balance + amount,
                total_earnings=VendorBalance.total_earnings + amount,
                bank_account_id=case(
                    (VendorBalance.bank_account_id.is_(None), bank.id),
                    else_=VendorBalance.bank_account_id,
                ),
            )
        )
        self._journal("vendor", vendor_id, "available", "earnings", amount, reference=reference)
        return self.vendor_balance(vendor_id, refresh=True)

    def link_bank_account(self, vendor_id: str, bank_account_id) -> VendorBalance:
        self.ensure_vendor_balance(vendor_id)
        self._execute(
            update(VendorBalance)
            .where(VendorBalance.vendor_id == vendor_id)
            .values(bank_account_id=bank_account_id)
        )
        return self.vendor_balance(vendor_id, refresh=True)

    def set_minimum_payout(self, vendor_id: str, amount) -> VendorBalance:
        amount = to_money(amount)
        if amount < MIN_PAYOUT_FLOOR or amount > MIN_PAYOUT_CEILING:
            raise ValidationError("Minimum payout must be between 1.00 and 1000.00")
        result = self._execute(
            update(VendorBalance)
            .where(VendorBalance.vendor_id == vendor_id)
            .values(minimum_payout_amount=amount)
        )
        if result.rowcount == 0:
            raise NotFoundError("Vendor balance not found")
        return self.vendor_balance(vendor_id, refresh=True)

    # -- customer pool --------------------------------------------------

    def customer_deduct(self, customer_id: str, amount, *, reference=None, now=None) -> CustomerBalance:
        amount = positive_money(amount)
        now = now or utcnow()
        self.ensure_customer_balance(customer_id)
        result = self._execute(
            update(CustomerBalance)
            .where(
                CustomerBalance.customer_id == customer_id,
                CustomerBalance.spending_balance >= amount,
            )
            .values(
                spending_balance=CustomerBalance.spending_balance - amount,
                total_spent=CustomerBalance.total_spent + amount,
                last_transaction=now,
            )
        )
        if result.rowcount == 0:
            raise InsufficientBalanceError("Insufficient balance")
        self._journal("customer", customer_id, "spending", "deduct", -amount, reference=reference)
        return self.customer_balance(customer_id, create=False)

    def customer_add(self, customer_id: str, amount, *, reference=None, now=None) -> CustomerBalance:
        amount = positive_money(amount)
        now = now or utcnow()
        self.ensure_customer_balance(customer_id)
        self._execute(
            update(CustomerBalance)
            .where(CustomerBalance.customer_id == customer_id)
            .values(
                spending_balance=CustomerBalance.spending_balance + amount,
                last_transaction=now,
            )
        )
        self._journal("customer", customer_id, "spending", "add", amount, reference=reference)
        return self.customer_balance(customer_id, create=False)

    def history(self, owner_type: str, owner_id: str, limit: int = 50):
        return (
            BalanceTransaction.query.filter_by(owner_type=owner_type, owner_id=owner_id)
            .order_by(BalanceTransaction.created_at.desc(), BalanceTransaction.id.desc())
            .limit(limit)
            .all()
        )
