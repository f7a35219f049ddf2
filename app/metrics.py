from flask import request
from prometheus_client import Histogram, Counter
from sqlalchemy import event
import time

from models import db

DB_QUERY_DURATION = Histogram(
    "db_query_duration_seconds",
    "Database query duration in seconds by statement kind",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

ERROR_COUNTER = Counter(
    "flask_error_total",
    "Count of HTTP responses with status >= 400",
    ["blueprint", "method", "code"],
)

ORDERS_CREATED = Counter(
    "orders_created_total",
    "Orders created with escrow held",
)

ESCROW_EVENTS = Counter(
    "escrow_events_total",
    "Escrow transitions by action",
    ["action"],  # credited, released, refunded
)

ESCROW_AMOUNT = Counter(
    "escrow_amount_total",
    "Money moved by escrow transitions",
    ["action"],
)

PAYOUTS = Counter(
    "payouts_total",
    "Vendor payouts by final status",
    ["status"],
)

RAIL_FAILURES = Counter(
    "payment_rail_failures_total",
    "Payment rail transfer calls that raised",
)


def _operation(statement: str) -> str:
    head = statement.lstrip().split(None, 1)
    return head[0].lower() if head else "unknown"


def _watch_queries(engine):
    @event.listens_for(engine, "before_cursor_execute")
    def _started(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("_query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _finished(conn, cursor, statement, parameters, context, executemany):
        starts = conn.info.get("_query_start_time")
        if starts:
            DB_QUERY_DURATION.labels(_operation(statement)).observe(time.perf_counter() - starts.pop())


def init_app(app):
    """Time every query on the app's engine and count error responses."""
    with app.app_context():
        _watch_queries(db.engine)

    @app.after_request
    def _count_errors(resp):
        if resp.status_code >= 400:
            ERROR_COUNTER.labels(request.blueprint or "none", request.method, resp.status_code).inc()
        return resp
