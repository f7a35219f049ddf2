import logging
import uuid

from sqlalchemy import update

from models import db, utcnow
from models.bank import BankAccount
from models.payout import Payout
from app.metrics import PAYOUTS, RAIL_FAILURES
from app.services import vault
from app.services.exceptions import (
    AuthorizationError,
    ExternalRailError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from app.services.ledger import BalanceLedger, positive_money
from app.services.payment_rail import PayoutAccount
from app.telemetry import settlement_span
from app.utils.db import transactional

logger = logging.getLogger(__name__)


class PayoutProcessor:
    """Debits a vendor's available balance, then asks the payment rail to move the money.

    The debit and the ``processing`` payout row are committed before the rail is
    called. A rail failure does not give the money back: the payout is recorded
    as ``simulated`` and the failure is logged.
    """

    def __init__(self, ledger: BalanceLedger, rail):
        self.ledger = ledger
        self.rail = rail

    def _payout_account(self, bank: BankAccount) -> PayoutAccount:
        card_number = vault.decrypt(bank.card_number)
        return PayoutAccount(
            account_id=bank.id,
            holder_name=bank.card_holder_name,
            bank_name=bank.bank_name,
            card_last4=card_number[-4:],
        )

    def validate(self, vendor_id, amount, actor_id=None):
        if actor_id is not None and str(actor_id) != str(vendor_id):
            raise AuthorizationError("Only the owning vendor can request a payout")
        amount = positive_money(amount)
        balance = self.ledger.vendor_balance(vendor_id, refresh=True)
        if balance is None:
            raise NotFoundError("Vendor balance not found")
        bank = balance.bank_account or BankAccount.query.filter_by(user_id=vendor_id).first()
        if bank is None or not bank.is_active:
            raise NotFoundError("Please connect an active bank account first")
        if amount < balance.minimum_payout_amount:
            raise ValidationError(f"Minimum payout amount is {balance.minimum_payout_amount:.2f}")
        if amount > balance.available_balance:
            raise InsufficientBalanceError("Insufficient available balance")
        return amount, bank

    def reserve(self, vendor_id, amount, bank, description=None, now=None) -> Payout:
        """Debit the available balance and record a processing payout. Does not commit."""
        now = now or utcnow()
        self.ledger.debit_available(vendor_id, amount, reference=description or "Payout", now=now)
        payout = Payout(
            vendor_id=str(vendor_id),
            bank_account_id=bank.id,
            amount=amount,
            description=description or "Payout request",
            status="processing",
            created_at=now,
        )
        db.session.add(payout)
        db.session.flush()
        return payout

    def settle(self, payout_id, account: PayoutAccount, now=None) -> Payout:
        """Call the rail for a reserved payout and record the outcome. Does not commit."""
        now = now or utcnow()
        payout = db.session.get(Payout, payout_id)
        values = {"processed_at": now}
        try:
            result = self.rail.create_transfer(
                account, payout.amount, payout.description, idempotency_key=f"payout-{payout.id}"
            )
            values.update(status="completed", transfer_id=result.transfer_id)
        except ExternalRailError as exc:
            RAIL_FAILURES.inc()
            logger.warning(
                "Payment rail failed for payout %s of vendor %s, balance stays debited: %s",
                payout.id, payout.vendor_id, exc,
            )
            values.update(
                status="simulated",
                transfer_id=f"sim_{uuid.uuid4().hex[:24]}",
                rail_error=str(exc),
            )
        db.session.execute(
            update(Payout)
            .where(Payout.id == payout.id, Payout.status == "processing")
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        PAYOUTS.labels(values["status"]).inc()
        return db.session.get(Payout, payout.id, populate_existing=True)

    def process(self, vendor_id, amount, description=None, actor_id=None, now=None):
        """Full payout use case; returns ``(payout, balance)``."""
        with settlement_span("payout.process", vendor_id=vendor_id, amount=amount):
            amount, bank = self.validate(vendor_id, amount, actor_id)
            account = self._payout_account(bank)
            with transactional("Failed to debit vendor balance for payout"):
                payout = self.reserve(vendor_id, amount, bank, description, now)
            logger.info("Payout %s of %s reserved for vendor %s", payout.id, amount, vendor_id)
            with transactional("Failed to record payout result"):
                payout = self.settle(payout.id, account, now)
        return payout, self.ledger.vendor_balance(vendor_id, refresh=True)

    def history(self, vendor_id, limit=50):
        return (
            Payout.query.filter_by(vendor_id=str(vendor_id))
            .order_by(Payout.created_at.desc(), Payout.id.desc())
            .limit(limit)
            .all()
        )
