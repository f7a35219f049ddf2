from flask import request, g
from app.schemas.balance import BalanceChangeRequest
from app.services.container import get_services
from app.utils import ok, transactional, validate_schema
from . import customer_bp


@customer_bp.route("/balance", methods=["GET"])
def get_balance():
    with transactional("Failed to load customer balance"):
        balance = get_services().ledger.customer_balance(g.user_id)
    return ok(balance.to_dict())


@customer_bp.route("/balance/deduct", methods=["POST"])
@validate_schema(BalanceChangeRequest)
def deduct_balance():
    data = request.validated_data
    with transactional("Failed to deduct customer balance"):
        balance = get_services().ledger.customer_deduct(
            g.user_id, data.amount, reference=data.description or "Purchase"
        )
    return ok(balance.to_dict(), message="Balance deducted")


@customer_bp.route("/balance/add", methods=["POST"])
@validate_schema(BalanceChangeRequest)
def add_balance():
    data = request.validated_data
    with transactional("Failed to add customer balance"):
        balance = get_services().ledger.customer_add(
            g.user_id, data.amount, reference=data.description or "Top up"
        )
    return ok(balance.to_dict(), message="Balance added")


@customer_bp.route("/balance/transactions", methods=["GET"])
def balance_transactions():
    limit = min(request.args.get("limit", 50, type=int) or 50, 200)
    txns = get_services().ledger.history("customer", g.user_id, limit)
    return ok({"transactions": [t.to_dict() for t in txns]})
