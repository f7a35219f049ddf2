from contextlib import contextmanager
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.flask import FlaskInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.instrumentation.requests import RequestsInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from models import db

logger = logging.getLogger(__name__)
tracer = trace.get_tracer("escrow.settlement")

_provider = None


class _NullStream:
    def write(self, _):
        return 0

    def flush(self):
        pass


def _span_processor(app):
    if app.config.get("TESTING"):
        return SimpleSpanProcessor(ConsoleSpanExporter(out=_NullStream()))
    endpoint = app.config.get("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318/v1/traces")
    return BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint))


def init_tracing(app):
    """Install one tracer provider per process and instrument this app."""
    global _provider
    if _provider is None:
        _provider = TracerProvider(
            resource=Resource.create({"service.name": app.config.get("OTEL_SERVICE_NAME", "escrow-settlement")})
        )
        _provider.add_span_processor(_span_processor(app))
        trace.set_tracer_provider(_provider)
        set_global_textmap(TraceContextTextMapPropagator())
        RequestsInstrumentor().instrument()
        logger.info("Tracing initialised for %s", app.config.get("OTEL_SERVICE_NAME"))

    FlaskInstrumentor().instrument_app(app, excluded_urls="health,metrics")
    with app.app_context():
        SQLAlchemyInstrumentor().instrument(engine=db.engine)


@contextmanager
def settlement_span(name, **attributes):
    """Span around a money movement, tagged with order/vendor ids."""
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"settlement.{key}", str(value))
        yield span
