from flask import request, g
from extensions import limiter, order_limit
from flask_limiter.util import get_remote_address
from app.schemas.orders import CreateOrderRequest
from app.services.container import get_services
from app.services.exceptions import NotFoundError
from app.utils import ok, transactional, validate_schema, page_args, pagination
from . import customer_bp


@customer_bp.route("/orders", methods=["POST"])
@limiter.limit(order_limit, key_func=get_remote_address, error_message="Too many orders from this IP")
@validate_schema(CreateOrderRequest)
def create_order():
    """Place an order; its total is held in escrow for the vendors.
    ---
    tags:
      - Customer
    responses:
      201:
        description: Order created with escrow held
      400:
        description: Invalid items or totals
    """
    data = request.validated_data
    services = get_services()
    with transactional("Order creation failed"):
        order = services.order_service.create_order(
            g.user_id,
            [item.model_dump() for item in data.items],
            shipping_method=data.shipping_method,
            shipping_address=data.shipping_address.model_dump(),
            order_notes=data.order_notes,
            subtotal=data.subtotal,
            shipping_cost=data.shipping_cost,
            tax=data.tax,
            total=data.total,
            payment_status=data.payment_status,
        )
    return ok(order.to_dict(), message="Order placed successfully", status=201)


@customer_bp.route("/orders", methods=["GET"])
def list_orders():
    page, limit = page_args()
    rows, total = get_services().orders.for_customer(
        g.user_id, status=request.args.get("status"), page=page, limit=limit
    )
    return ok({
        "orders": [o.to_dict(include_items=False) for o in rows],
        "pagination": pagination(total, page, limit),
    })


@customer_bp.route("/orders/<int:order_id>", methods=["GET"])
def get_order(order_id):
    order = get_services().order_service.get_for_customer(order_id, g.user_id)
    return ok(order.to_dict())


@customer_bp.route("/orders/<int:order_id>/cancel", methods=["POST"])
def cancel_order(order_id):
    with transactional("Order cancellation failed"):
        order = get_services().order_service.cancel_order(order_id, g.user_id)
    return ok(order.to_dict(), message="Order cancelled")


@customer_bp.route("/orders/<int:order_id>/delivery-proof", methods=["GET"])
def get_delivery_proof(order_id):
    services = get_services()
    services.order_service.get_for_customer(order_id, g.user_id)
    proof = services.proofs.visible_to(order_id, g.user_id, "customer")
    if proof is None:
        raise NotFoundError("No delivery proof uploaded yet")
    return ok(proof.to_dict())
