from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os

# Shared limiter; per-route limits come from config so tests can relax them
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv("RATELIMIT_STORAGE_URL", "memory://"),
    strategy="fixed-window",
    default_limits=["300 per hour"],
)


def order_limit():
    return current_app.config.get("ORDER_LIMIT_PER_IP", "20 per hour")


def payout_limit():
    return current_app.config.get("PAYOUT_LIMIT_PER_IP", "10 per hour")
