from flask import Blueprint, request, g
from app.version import API_PREFIX
from app.schemas.admin import EscrowActionRequest, OrderStatusRequest, ProofReviewRequest
from app.services.container import get_services
from app.tasks.notifications import dispatch, notify_escrow_released_task, notify_proof_reviewed_task
from app.utils import (
    auth_required,
    ok,
    page_args,
    pagination,
    role_required,
    transactional,
    validate_schema,
)
from models.balance import VendorBalance
from models.proof import DeliveryProof

admin_bp = Blueprint("admin", __name__, url_prefix=f"{API_PREFIX}/admin")


@admin_bp.before_request
@auth_required
@role_required("admin")
def _enforce_admin_role():
    """Ensure the requester is an authenticated admin."""
    return None


def _notify_release(order):
    shares = {vendor_id: str(share) for vendor_id, share in order.vendor_shares().items()}
    dispatch(notify_escrow_released_task, order.order_number, shares)


@admin_bp.route("/dashboard", methods=["GET"])
def dashboard():
    services = get_services()
    counts = services.orders.status_counts()
    return ok({
        "stats": {
            "total_orders": sum(counts.values()),
            "orders_by_status": counts,
            "pending_orders": counts.get("pending", 0),
            "delivered_orders": counts.get("delivered", 0),
            "pending_proofs": DeliveryProof.query.filter_by(verification_status="pending").count(),
            "total_vendors": VendorBalance.query.count(),
            "escrow_held": float(services.orders.held_escrow_total()),
        }
    })


@admin_bp.route("/orders", methods=["GET"])
def list_orders():
    page, limit = page_args(default_limit=20)
    status = request.args.get("status")
    rows, total = get_services().orders.paginate(
        status=None if status in (None, "", "all") else status, page=page, limit=limit
    )
    return ok({
        "orders": [o.to_dict() for o in rows],
        "pagination": pagination(total, page, limit),
    })


@admin_bp.route("/orders/<int:order_id>/status", methods=["PATCH"])
@validate_schema(OrderStatusRequest)
def update_order_status(order_id):
    """Set an order's status; delivering it releases a held escrow.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Status updated
      409:
        description: Order is in a terminal status
    """
    data = request.validated_data
    services = get_services()
    was_held = services.orders.get_or_404(order_id).escrow_status == "held"
    with transactional("Order status update failed"):
        order = services.order_service.update_status(order_id, data.status, g.user_id)
        if data.admin_notes:
            services.orders.log_action(order.id, "admin_note", g.user_id, data.admin_notes)
    if was_held and order.escrow_status == "released":
        _notify_release(order)
    return ok(order.to_dict(), message=f"Order status updated to {data.status}")


@admin_bp.route("/delivery-proofs", methods=["GET"])
def list_delivery_proofs():
    page, limit = page_args(default_limit=20)
    proofs, total = get_services().proofs.review_queue(
        status=request.args.get("status", "pending"), page=page, limit=limit
    )
    return ok({
        "proofs": [p.to_dict(include_order=True) for p in proofs],
        "pagination": pagination(total, page, limit),
    })


@admin_bp.route("/delivery-proofs/<int:proof_id>/review", methods=["PATCH"])
@validate_schema(ProofReviewRequest)
def review_delivery_proof(proof_id):
    data = request.validated_data
    with transactional("Delivery proof review failed"):
        proof = get_services().proofs.review(proof_id, data.action, g.user_id, data.admin_notes)
    dispatch(notify_proof_reviewed_task, proof.vendor_id, proof.order.order_number, proof.verification_status)
    return ok(proof.to_dict(include_order=True), message=f"Delivery proof {proof.verification_status}")


@admin_bp.route("/orders/<int:order_id>/release-escrow", methods=["POST"])
@validate_schema(EscrowActionRequest)
def release_escrow(order_id):
    data = request.validated_data
    with transactional("Escrow release failed"):
        order = get_services().settlement.release(
            order_id, g.user_id, reason=data.reason or "Released by admin"
        )
    _notify_release(order)
    return ok(order.to_dict(), message="Escrow released to vendors")


@admin_bp.route("/orders/<int:order_id>/refund-escrow", methods=["POST"])
@validate_schema(EscrowActionRequest)
def refund_escrow(order_id):
    data = request.validated_data
    with transactional("Escrow refund failed"):
        order = get_services().settlement.refund(
            order_id, g.user_id, reason=data.reason or "Refunded by admin"
        )
    return ok(order.to_dict(), message="Escrow refunded")


@admin_bp.route("/vendors", methods=["GET"])
def list_vendors():
    page, limit = page_args(default_limit=20)
    q = VendorBalance.query.order_by(VendorBalance.total_earnings.desc(), VendorBalance.id.asc())
    total = q.order_by(None).count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return ok({
        "vendors": [b.to_dict() for b in rows],
        "pagination": pagination(total, page, limit),
    })
