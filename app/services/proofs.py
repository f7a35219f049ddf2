from datetime import timedelta
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import utcnow
from models.proof import DeliveryProof, VERIFICATION_STATUSES
from app.services.exceptions import (
    NotFoundError,
    ReuploadWindowExpired,
    StateConflictError,
    ValidationError,
)

logger = logging.getLogger(__name__)

REVIEW_ACTIONS = {
    "approve": "approved",
    "reject": "rejected",
    "requires_review": "requires_review",
}
REVIEWABLE = ("pending", "requires_review")


class ProofWorkflow:
    """Vendor upload / reupload and admin review of delivery proofs."""

    def __init__(self, orders, window_minutes=15):
        self.orders = orders
        self.window = timedelta(minutes=window_minutes)

    @property
    def session(self):
        return self.orders.session

    def for_order(self, order_id):
        return DeliveryProof.query.filter_by(order_id=order_id).first()

    def get_or_404(self, proof_id, *, refresh=False):
        proof = self.session.get(DeliveryProof, proof_id, populate_existing=refresh)
        if proof is None:
            raise NotFoundError("Delivery proof not found")
        return proof

    def upload(self, order_id, vendor_id, image_url, image_id, *, delivery_notes=None,
               location=None, metadata=None, now=None):
        """Create the order's proof, or reupload it while the window is open.

        Returns ``(proof, created)``. Order status is not changed.
        """
        now = now or utcnow()
        if not image_url or not image_id:
            raise ValidationError("Image URL and ID are required")
        order = self.orders.get_or_404(order_id)
        if not order.has_vendor(str(vendor_id)):
            raise NotFoundError("Order not found")
        if order.status != "pending":
            raise StateConflictError("Delivery proof can only be uploaded for pending orders")

        existing = self.for_order(order.id)
        if existing is not None:
            return self._reupload(existing, image_url, image_id, delivery_notes, location, metadata, now), False

        proof = DeliveryProof(
            order_id=order.id,
            vendor_id=str(vendor_id),
            image_url=image_url,
            image_id=image_id,
            delivery_notes=delivery_notes,
            location=location,
            file_metadata=metadata,
            uploaded_at=now,
            reupload_expires_at=now + self.window,
            can_reupload=True,
            verification_status="pending",
        )
        self.session.add(proof)
        try:
            self.session.flush()
        except IntegrityError:
            raise StateConflictError("A delivery proof already exists for this order")
        self.orders.log_action(order.id, "proof_uploaded", vendor_id, image_id)
        logger.info("Delivery proof uploaded for order %s by vendor %s", order.order_number, vendor_id)
        return proof, True

    def _reupload(self, proof, image_url, image_id, delivery_notes, location, metadata, now):
        values = dict(
            image_url=image_url,
            image_id=image_id,
            delivery_notes=delivery_notes,
            location=location,
            file_metadata=metadata,
            uploaded_at=now,
            reupload_expires_at=now + self.window,
            reupload_count=DeliveryProof.reupload_count + 1,
            verification_status="pending",
        )
        result = self.session.execute(
            update(DeliveryProof)
            .where(
                DeliveryProof.id == proof.id,
                DeliveryProof.can_reupload.is_(True),
                DeliveryProof.reupload_expires_at > now,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ReuploadWindowExpired(
                "Re-upload window has expired. You can only re-upload within "
                f"{int(self.window.total_seconds() // 60)} minutes of the last upload."
            )
        self.orders.log_action(proof.order_id, "proof_reuploaded", proof.vendor_id, image_id)
        return self.get_or_404(proof.id, refresh=True)

    def review(self, proof_id, action, admin_id, notes=None, now=None):
        """Apply an admin decision and move the order where the decision requires."""
        now = now or utcnow()
        status = REVIEW_ACTIONS.get(action)
        if status is None:
            raise ValidationError("Invalid action")
        proof = self.get_or_404(proof_id)
        values = dict(
            verification_status=status,
            reviewed_by=str(admin_id),
            reviewed_at=now,
        )
        if notes is not None:
            values["admin_notes"] = notes
        if status == "approved":
            values["can_reupload"] = False
        result = self.session.execute(
            update(DeliveryProof)
            .where(
                DeliveryProof.id == proof.id,
                DeliveryProof.verification_status.in_(REVIEWABLE),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StateConflictError(f"Delivery proof is already {proof.verification_status}")

        order = self.orders.get_or_404(proof.order_id)
        if status == "approved" and self.orders.transition(order.id, ("pending", "processing"), "shipped"):
            self.orders.log_status(order.id, "shipped", admin_id)
        elif status == "rejected" and self.orders.transition(order.id, ("processing", "shipped"), "pending"):
            self.orders.log_status(order.id, "pending", admin_id)
        self.orders.log_action(order.id, f"proof_{status}", admin_id, notes)
        logger.info("Delivery proof %s for order %s marked %s by %s", proof.id, order.order_number, status, admin_id)
        return self.get_or_404(proof.id, refresh=True)

    def review_queue(self, status="pending", page=1, limit=20):
        """Pending proofs oldest-first, anything else newest-first."""
        q = DeliveryProof.query
        if status and status != "all":
            if status not in VERIFICATION_STATUSES:
                raise ValidationError("Invalid verification status")
            q = q.filter(DeliveryProof.verification_status == status)
        if status == "pending":
            q = q.order_by(DeliveryProof.uploaded_at.asc(), DeliveryProof.id.asc())
        else:
            q = q.order_by(DeliveryProof.uploaded_at.desc(), DeliveryProof.id.desc())
        total = q.order_by(None).count()
        return q.offset((page - 1) * limit).limit(limit).all(), total

    def for_vendor(self, vendor_id, limit=20):
        return (
            DeliveryProof.query.filter_by(vendor_id=str(vendor_id))
            .order_by(DeliveryProof.uploaded_at.desc())
            .limit(limit)
            .all()
        )

    def visible_to(self, order_id, user_id, role):
        """Proof for an order if the caller is its customer, one of its vendors, or an admin."""
        order = self.orders.get_or_404(order_id)
        user_id = str(user_id)
        allowed = (
            role == "admin"
            or order.customer_id == user_id
            or (role == "vendor" and order.has_vendor(user_id))
        )
        if not allowed:
            raise NotFoundError("Order not found")
        return self.for_order(order.id)
