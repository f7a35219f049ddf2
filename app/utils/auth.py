from functools import wraps
import logging
from flask import request, g
from opentelemetry import trace
from .responses import error
from app.auth.permissions import role_has_scope
from .jwt import decode_token, TokenError

logger = logging.getLogger(__name__)


def _bearer_token():
    header = request.headers.get("Authorization", "").strip()
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer":
        return value.strip()
    return header


def auth_required(func):
    """Resolve the bearer token into ``g.user_id`` and ``g.role``."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return error("Auth header missing", status=401)
        try:
            payload = decode_token(token, expected_type="access")
        except TokenError as e:
            return error(str(e), status=401)

        g.user_id = payload["sub"]
        g.role = payload.get("role")
        span = trace.get_current_span()
        span.set_attribute("enduser.id", g.user_id)
        span.set_attribute("enduser.role", g.role or "")
        return func(*args, **kwargs)

    return wrapper


def _allows(role, entry):
    # "vendor" matches the role, "vendor:request_payout" also needs the scope
    wanted, _, action = entry.partition(":")
    if role != wanted:
        return False
    return not action or role_has_scope(role, action)


def role_required(required):
    """Authorize on the caller's role or a ``role:action`` scope."""
    entries = tuple(required) if isinstance(required, (list, tuple, set)) else (required,)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = getattr(g, "role", None)
            if not role:
                return error("Role missing", status=403)
            if not any(_allows(role, entry) for entry in entries):
                logger.info("Role %s denied on %s", role, request.path)
                return error("Forbidden", status=403)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
