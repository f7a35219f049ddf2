from flask import Blueprint
from app.version import API_PREFIX
from app.utils import auth_required, role_required

customer_bp = Blueprint("customer", __name__, url_prefix=f"{API_PREFIX}/customer")


@customer_bp.before_request
@auth_required
@role_required("customer")
def _enforce_customer_role():
    """Ensure the requester is an authenticated customer."""
    return None

from . import orders  # noqa: E402
from . import balance  # noqa: E402
