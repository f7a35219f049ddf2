import logging

from sqlalchemy import update

from models import db
from models.bank import BankAccount
from models.balance import VendorBalance
from models.payout import Payout
from app.services import vault
from app.services.exceptions import NotFoundError, StateConflictError, ValidationError
from app.services.ledger import BalanceLedger, ZERO

logger = logging.getLogger(__name__)


def _check_text(value, label):
    value = (value or "").strip()
    if not 2 <= len(value) <= 100:
        raise ValidationError(f"{label} must be between 2 and 100 characters")
    return value


def masked_view(bank: BankAccount):
    """Public representation; card data is decrypted only to mask it."""
    card = vault.decrypt(bank.card_number)
    month = vault.decrypt(bank.expiry_month)
    year = vault.decrypt(bank.expiry_year)
    return {
        "id": bank.id,
        "type": bank.account_type,
        "card_holder_name": bank.card_holder_name,
        "masked_card_number": vault.mask_sensitive_data(card, "card"),
        "masked_expiry": vault.mask_sensitive_data(month.zfill(2) + year[-2:], "expiry"),
        "bank_name": bank.bank_name,
        "is_active": bank.is_active,
        "created_at": bank.created_at.isoformat() if bank.created_at else None,
        "updated_at": bank.updated_at.isoformat() if bank.updated_at else None,
    }


class BankAccountService:
    def __init__(self, ledger: BalanceLedger):
        self.ledger = ledger

    def get(self, user_id):
        return BankAccount.query.filter_by(user_id=str(user_id)).first()

    def connect(self, user_id, account_type, *, card_holder_name, card_number, expiry_month,
                expiry_year, cvv, bank_name) -> BankAccount:
        if account_type not in ("customer", "vendor"):
            raise ValidationError("Type must be either customer or vendor")
        holder = _check_text(card_holder_name, "Cardholder name")
        bank_name = _check_text(bank_name, "Bank name")
        card_number = vault.normalize_card_number(card_number)
        vault.require_valid_card(card_number, expiry_month, expiry_year, cvv)
        if self.get(user_id) is not None:
            raise StateConflictError("Bank account already exists for this user")

        bank = BankAccount(
            user_id=str(user_id),
            account_type=account_type,
            card_holder_name=holder,
            card_number=vault.encrypt(card_number),
            expiry_month=vault.encrypt(str(expiry_month)),
            expiry_year=vault.encrypt(str(expiry_year)),
            cvv=vault.encrypt(str(cvv)),
            bank_name=bank_name,
            is_active=True,
        )
        db.session.add(bank)
        db.session.flush()
        if account_type == "vendor":
            self.ledger.link_bank_account(str(user_id), bank.id)
        else:
            self.ledger.ensure_customer_balance(str(user_id))
        logger.info("Bank account connected for %s %s", account_type, user_id)
        return bank

    def update(self, user_id, *, card_holder_name=None, card_number=None, expiry_month=None,
               expiry_year=None, cvv=None, bank_name=None) -> BankAccount:
        bank = self.get(user_id)
        if bank is None:
            raise NotFoundError("Bank account not found")
        if card_holder_name:
            bank.card_holder_name = _check_text(card_holder_name, "Cardholder name")
        if card_number:
            card_number = vault.normalize_card_number(card_number)
            if not vault.validate_card_number(card_number):
                raise ValidationError("Invalid card number")
            bank.card_number = vault.encrypt(card_number)
        if expiry_month and expiry_year:
            if not vault.validate_expiry_date(expiry_month, expiry_year):
                raise ValidationError("Invalid expiry date")
            bank.expiry_month = vault.encrypt(str(expiry_month))
            bank.expiry_year = vault.encrypt(str(expiry_year))
        if cvv:
            if not vault.validate_cvv(cvv):
                raise ValidationError("Invalid CVV")
            bank.cvv = vault.encrypt(str(cvv))
        if bank_name:
            bank.bank_name = _check_text(bank_name, "Bank name")
        db.session.flush()
        return bank

    def delete(self, user_id) -> None:
        bank = self.get(user_id)
        if bank is None:
            raise NotFoundError("Bank account not found")
        if bank.account_type == "vendor":
            balance = self.ledger.vendor_balance(str(user_id), refresh=True)
            if balance and (balance.available_balance > ZERO or balance.pending_balance > ZERO):
                raise StateConflictError(
                    "Cannot delete bank account with pending or available balance. "
                    "Please request a payout first."
                )
            db.session.execute(
                update(VendorBalance)
                .where(VendorBalance.bank_account_id == bank.id)
                .values(bank_account_id=None)
                .execution_options(synchronize_session=False)
            )
        db.session.execute(
            update(Payout)
            .where(Payout.bank_account_id == bank.id)
            .values(bank_account_id=None)
            .execution_options(synchronize_session=False)
        )
        db.session.delete(bank)
        logger.info("Bank account deleted for %s", user_id)
