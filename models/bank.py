from sqlalchemy import Column, Integer, String, DateTime, Boolean
from models import db, utcnow


class BankAccount(db.Model):
    """Payout credentials. Card fields hold vault ciphertext (iv:cipher hex)."""
    __tablename__ = "bank_account"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), unique=True, nullable=False)
    account_type = Column(String(10), nullable=False)  # customer, vendor
    card_holder_name = Column(String(100), nullable=False)
    card_number = Column(String(200), nullable=False)
    expiry_month = Column(String(100), nullable=False)
    expiry_year = Column(String(100), nullable=False)
    cvv = Column(String(100), nullable=False)
    bank_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<BankAccount user={self.user_id} type={self.account_type}>"
