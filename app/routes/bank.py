from flask import Blueprint, current_app, request, g
from app.version import API_PREFIX
from app.schemas.bank import ConnectBankRequest, UpdateBankRequest
from app.services import vault
from app.services.bank_accounts import masked_view
from app.services.container import get_services
from app.services.exceptions import NotFoundError, ValidationError
from app.utils import auth_required, ok, error, role_required, transactional, validate_schema

bank_bp = Blueprint("bank", __name__, url_prefix=f"{API_PREFIX}/bank")


@bank_bp.before_request
@auth_required
@role_required(["customer", "vendor", "admin"])
def _enforce_authenticated():
    return None


@bank_bp.route("/connect", methods=["POST"])
@validate_schema(ConnectBankRequest)
def connect_bank_account():
    """Store an encrypted card for payouts (vendors) or payments (customers).
    ---
    tags:
      - Bank
    responses:
      201:
        description: Bank account connected, card data returned masked
      409:
        description: The user already has a bank account
    """
    data = request.validated_data
    account_type = data.type or g.role
    with transactional("Failed to connect bank account"):
        bank = get_services().bank_accounts.connect(
            g.user_id,
            account_type,
            card_holder_name=data.card_holder_name,
            card_number=data.card_number,
            expiry_month=data.expiry_month,
            expiry_year=data.expiry_year,
            cvv=data.cvv,
            bank_name=data.bank_name,
        )
    return ok(masked_view(bank), message="Bank account connected successfully", status=201)


@bank_bp.route("/account", methods=["GET"])
def get_bank_account():
    bank = get_services().bank_accounts.get(g.user_id)
    if bank is None:
        raise NotFoundError("Bank account not found")
    return ok(masked_view(bank))


@bank_bp.route("/account", methods=["PUT"])
@validate_schema(UpdateBankRequest)
def update_bank_account():
    changes = request.validated_data.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError("No changes supplied")
    with transactional("Failed to update bank account"):
        bank = get_services().bank_accounts.update(g.user_id, **changes)
    return ok(masked_view(bank), message="Bank account updated successfully")


@bank_bp.route("/account", methods=["DELETE"])
def delete_bank_account():
    with transactional("Failed to delete bank account"):
        get_services().bank_accounts.delete(g.user_id)
    return ok(message="Bank account deleted successfully")


@bank_bp.route("/test-card", methods=["POST"])
def check_test_card():
    if current_app.config.get("IS_PRODUCTION"):
        return error("Not found", status=404)
    card_number = vault.normalize_card_number((request.get_json(silent=True) or {}).get("card_number"))
    if not card_number:
        raise ValidationError("Card number is required")
    test_cards = vault.get_test_card_numbers()
    return ok({
        "card_number": vault.mask_sensitive_data(card_number, "card"),
        "is_valid": vault.validate_card_number(card_number),
        "is_test_card": card_number in test_cards,
        "test_cards": [vault.mask_sensitive_data(c, "card") for c in test_cards],
    })
