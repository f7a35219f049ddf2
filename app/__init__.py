from flask import Flask, request, g
from app.config import get_config_class
from app.logging import configure_logging
from app.errors import errors_bp
from app.cli import register_cli
from app.api import register_api_v1
from app.version import API_PREFIX, __version__
from app import metrics as app_metrics
from app.services.container import init_services
from app.services.vault import init_vault
from flask_cors import CORS
from flasgger import Swagger
from prometheus_client import CollectorRegistry
from prometheus_flask_exporter import PrometheusMetrics
from flask_migrate import Migrate
from celery_app import celery_app
import extensions
import logging
import uuid
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from app.telemetry import init_tracing
from models import db

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: rule.rule.startswith(f"{API_PREFIX}/"),
            "model_filter": lambda tag: True,
        }
    ],
    "swagger_ui": True,
    "specs_route": "/docs/",
}

SWAGGER_TEMPLATE = {
    "info": {"title": "Escrow settlement API", "version": __version__},
    "securityDefinitions": {"Bearer": {"type": "apiKey", "name": "Authorization", "in": "header"}},
    "tags": [
        {"name": "Customer", "description": "Orders, cancellations and spending balance"},
        {"name": "Vendor", "description": "Delivery proofs, tracking, balances and payouts"},
        {"name": "Admin", "description": "Order oversight, proof review and escrow control"},
        {"name": "Bank", "description": "Encrypted bank card storage"},
    ],
}

_app_info_registered = False


def _init_metrics(app):
    global _app_info_registered
    if app.config.get("TESTING"):
        # default registry refuses a second set of collectors
        return PrometheusMetrics(app, path="/metrics", registry=CollectorRegistry())
    metrics = PrometheusMetrics(app, path="/metrics")
    if not _app_info_registered:
        metrics.info("app_info", "Escrow settlement service", version=__version__)
        _app_info_registered = True
    return metrics


def _cors_origins(value):
    if not isinstance(value, str):
        return value or "*"
    value = value.strip()
    if value == "*":
        return "*"
    return [o.strip() for o in value.split(",") if o.strip()]


def _register_request_hooks(app):
    propagator = TraceContextTextMapPropagator()

    @app.before_request
    def _set_request_id():
        g.request_id = (request.headers.get("X-Request-ID") or uuid.uuid4().hex)[:100]
        app.logger.debug("request start %s %s", request.method, request.path)

    @app.after_request
    def _response_headers(resp):
        rid = getattr(g, "request_id", None)
        if rid:
            resp.headers["X-Request-ID"] = rid
        carrier = {}
        propagator.inject(carrier)
        if carrier.get("traceparent"):
            resp.headers["traceparent"] = carrier["traceparent"]

        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        exposed = [h.strip() for h in resp.headers.get("Access-Control-Expose-Headers", "").split(",") if h.strip()]
        for header in ("X-Request-ID", "traceparent"):
            if header not in exposed:
                exposed.append(header)
        resp.headers["Access-Control-Expose-Headers"] = ",".join(exposed)
        return resp


def create_app(config_object=None, **service_overrides):
    """Application factory.

    ``service_overrides`` are handed to the service container, e.g. a
    ``payment_rail`` or ``inventory`` stand-in.
    """
    app = Flask(__name__)
    app.config.from_object(config_object or get_config_class())

    configure_logging(app)
    register_cli(app)
    init_vault(app)

    extensions.limiter.init_app(app)
    app.limiter = extensions.limiter
    app.extensions["celery"] = celery_app

    Migrate(app, db, compare_type=True, render_as_batch=True)
    Swagger(app, config=SWAGGER_CONFIG, template=SWAGGER_TEMPLATE)
    _init_metrics(app)
    CORS(
        app,
        origins=_cors_origins(app.config.get("CORS_ALLOWED_ORIGINS", "*")),
        supports_credentials=True,
        expose_headers=["X-Request-ID", "traceparent"],
    )

    app.register_blueprint(errors_bp)
    if app.config.get("TESTING"):
        from app.test_support import test_support_bp
        app.register_blueprint(test_support_bp)
        app.register_blueprint(test_support_bp, url_prefix=f"{API_PREFIX}/test_support", name="test_support_bp_v1")
    register_api_v1(app)
    _register_request_hooks(app)

    db.init_app(app)
    app_metrics.init_app(app)
    init_tracing(app)
    init_services(app, **service_overrides)
    if app.config.get("DEBUG") or app.config.get("TESTING"):
        with app.app_context():
            db.create_all()
            logging.info("Tables created")

    @app.route("/health")
    def health():
        return {"status": "ok", "version": __version__}, 200

    return app
