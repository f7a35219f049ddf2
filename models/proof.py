from datetime import timedelta
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from models import db, BIGINT, utcnow

VERIFICATION_STATUSES = ("pending", "approved", "rejected", "requires_review")
REUPLOAD_WINDOW = timedelta(minutes=15)


def _iso(value):
    return value.isoformat() if value else None


class DeliveryProof(db.Model):
    __tablename__ = "delivery_proof"
    __table_args__ = (
        db.Index("ix_delivery_proof_vendor_uploaded", "vendor_id", "uploaded_at"),
        db.Index("ix_delivery_proof_status_uploaded", "verification_status", "uploaded_at"),
    )
    id = Column(Integer, primary_key=True)
    # exactly one proof per order
    order_id = Column(BIGINT, ForeignKey("order.id"), unique=True, nullable=False)
    vendor_id = Column(String(64), nullable=False)
    image_url = Column(String(500), nullable=False)
    image_id = Column(String(200), nullable=False)
    delivery_notes = Column(Text, nullable=True)
    location = Column(db.JSON, nullable=True)  # section, bay, warehouse
    file_metadata = Column(db.JSON, nullable=True)  # file_size, mime_type, dimensions
    uploaded_at = Column(DateTime, nullable=False, default=utcnow)
    reupload_expires_at = Column(DateTime, nullable=False)
    can_reupload = Column(Boolean, nullable=False, default=True)
    reupload_count = Column(Integer, nullable=False, default=0)
    verification_status = Column(String(20), nullable=False, default="pending")
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(String(64), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", back_populates="delivery_proof", lazy=True)

    def can_still_reupload(self, now=None):
        now = now or utcnow()
        return bool(self.can_reupload) and now < self.reupload_expires_at

    def to_dict(self, include_order=False):
        data = {
            "id": self.id,
            "order_id": self.order_id,
            "vendor_id": self.vendor_id,
            "image_url": self.image_url,
            "image_id": self.image_id,
            "delivery_notes": self.delivery_notes,
            "location": self.location,
            "metadata": self.file_metadata,
            "uploaded_at": _iso(self.uploaded_at),
            "reupload_expires_at": _iso(self.reupload_expires_at),
            "can_reupload": self.can_reupload,
            "can_still_reupload": self.can_still_reupload(),
            "reupload_count": self.reupload_count,
            "verification_status": self.verification_status,
            "admin_notes": self.admin_notes,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": _iso(self.reviewed_at),
        }
        if include_order and self.order is not None:
            data["order"] = {
                "order_number": self.order.order_number,
                "total": float(self.order.total),
                "status": self.order.status,
                "customer_id": self.order.customer_id,
            }
        return data
