from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from models import db, BIGINT, MONEY, utcnow

PAYOUT_STATUSES = ("processing", "completed", "simulated")


class Payout(db.Model):
    __tablename__ = "payout"
    __table_args__ = (
        db.Index("ix_payout_vendor_created", "vendor_id", "created_at"),
    )
    id = Column(BIGINT, primary_key=True)
    vendor_id = Column(String(64), nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_account.id"), nullable=True)
    amount = Column(MONEY, nullable=False)
    description = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default="processing")
    transfer_id = Column(String(100), nullable=True)
    rail_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    processed_at = Column(DateTime, nullable=True)

    bank_account = db.relationship("BankAccount", lazy=True)

    def to_dict(self):
        bank = self.bank_account
        return {
            "id": self.id,
            "amount": float(self.amount),
            "description": self.description,
            "status": self.status,
            "transfer_id": self.transfer_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "bank_account": {
                "card_holder_name": bank.card_holder_name,
                "bank_name": bank.bank_name,
            } if bank else None,
        }
