import logging
from flask import Blueprint, current_app, g
from werkzeug.exceptions import HTTPException
from app.services.exceptions import SettlementError
from app.utils.responses import error

errors_bp = Blueprint("errors_bp", __name__)
logger = logging.getLogger(__name__)


@errors_bp.app_errorhandler(HTTPException)
def handle_http_exception(e):
    msg = e.description or getattr(e, "name", "HTTP Error")
    return error(msg, status=e.code, code=e.code)


@errors_bp.app_errorhandler(SettlementError)
def handle_settlement_error(e):
    if e.status_code >= 500:
        logger.warning("%s: %s", type(e).__name__, e.message)
    return error(e.message, status=e.status_code, code=e.status_code)


@errors_bp.app_errorhandler(Exception)
def handle_unexpected_exception(e):
    error_id = getattr(g, "request_id", None)
    logging.exception("Unhandled exception (error_id=%s)", error_id)
    detail = f"{type(e).__name__}: {e}" if current_app.config.get("DEBUG") else None
    return error(
        "An unexpected error occurred. Please try again later.",
        status=500,
        code=500,
        error_id=error_id,
        detail=detail,
    )
