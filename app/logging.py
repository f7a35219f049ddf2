import json
import logging
import os
import re
from typing import Any, Dict

from opentelemetry.trace import get_current_span

SENSITIVE_KEYS = {
    "password", "token", "access_token", "refresh_token", "authorization", "api_key",
    "card_number", "cvv", "expiry_month", "expiry_year", "bank_encryption_key",
}
REDACTED = "[REDACTED]"

# bare PANs that slip into free-text messages
CARD_NUMBER_RE = re.compile(r"\b(?:[0-9][ -]?){12,18}([0-9]{4})\b", re.ASCII)


def _unmasked_debug(record: logging.LogRecord) -> bool:
    env = os.getenv("APP_ENV", "development").lower()
    return record.levelno == logging.DEBUG and env != "production"


def _request_context():
    try:
        from flask import g, has_request_context
        if not has_request_context():
            return "n/a", None
        return getattr(g, "request_id", None) or "n/a", getattr(g, "user_id", None)
    except RuntimeError:
        return "n/a", None


def _trace_ids():
    ctx = get_current_span().get_span_context()
    if not ctx.is_valid:
        return "n/a", "n/a"
    return format(ctx.trace_id, "032x"), format(ctx.span_id, "016x")


class ContextFilter(logging.Filter):
    """Stamp request id, acting user and trace ids on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id, record.user_id = _request_context()
        record.trace_id, record.span_id = _trace_ids()
        return True


def mask_card_numbers(text: str) -> str:
    return CARD_NUMBER_RE.sub(lambda m: "**** **** **** " + m.group(1), text)


def _mask_value(value):
    if isinstance(value, dict):
        return _mask_dict(value)
    if isinstance(value, str):
        return mask_card_numbers(value)
    return value


def _mask_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: REDACTED if str(key).lower() in SENSITIVE_KEYS else _mask_value(value)
        for key, value in data.items()
    }


class MaskingFilter(logging.Filter):
    """Redact card data and credentials unless this is DEBUG outside production."""

    def filter(self, record: logging.LogRecord) -> bool:
        if _unmasked_debug(record):
            return True
        if isinstance(record.msg, dict):
            record.msg = _mask_dict(record.msg)
        elif isinstance(record.msg, str):
            record.msg = mask_card_numbers(record.msg)
        if isinstance(record.args, dict):
            record.args = _mask_dict(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(_mask_value(a) for a in record.args)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        entry = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "request_id": getattr(record, "request_id", "n/a"),
            "trace_id": getattr(record, "trace_id", "n/a"),
            "span_id": getattr(record, "span_id", "n/a"),
        }
        user_id = getattr(record, "user_id", None)
        if user_id:
            entry["user_id"] = user_id
        if isinstance(record.msg, dict):
            entry.update(record.msg)
        else:
            entry["message"] = record.getMessage()
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _level_for(app) -> int:
    name = os.getenv("LOG_LEVEL")
    if name:
        return getattr(logging, name.upper(), logging.INFO)
    return logging.DEBUG if app.config.get("DEBUG") else logging.INFO


def configure_logging(app) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(datefmt="%Y-%m-%dT%H:%M:%S%z"))
    handler.addFilter(ContextFilter())
    handler.addFilter(MaskingFilter())
    level = _level_for(app)

    # app.logger propagates to the root handler
    app.logger.handlers.clear()
    app.logger.setLevel(level)

    root = logging.getLogger()
    if not any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "celery"):
        lg = logging.getLogger(noisy)
        lg.setLevel(max(level, logging.INFO))
        lg.handlers.clear()
        lg.propagate = True
