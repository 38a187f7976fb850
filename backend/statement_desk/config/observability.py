"""
OpenTelemetry setup for the statement service.

Spans wrap statement operations and PDF rendering; meters feed the same
prometheus_client registry that /metrics exposes, so OpenTelemetry instruments
and the native collectors in main.py are scraped together.
"""

import logging
import time
from typing import Optional

import structlog
from opentelemetry import trace, metrics
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from prometheus_client import start_http_server

from statement_desk.config.settings import get_settings

SERVICE_NAME = "statement-desk"
SERVICE_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def configure_observability(service_name: str = SERVICE_NAME) -> None:
    """
    Install tracer and meter providers from settings.

    Spans go to the console only with ENABLE_TRACING; a standalone Prometheus
    scrape port opens only when PROMETHEUS_PORT is set (the /metrics route is
    served by the app either way).
    """
    settings = get_settings()
    resource = Resource.create({
        "service.name": service_name,
        "service.version": SERVICE_VERSION,
        "deployment.environment": settings.ENVIRONMENT,
    })
    configure_tracing(resource, export=settings.ENABLE_TRACING)
    configure_metrics(resource, settings.PROMETHEUS_PORT)
    structlog.get_logger().info(
        "Observability configured",
        service_name=service_name,
        environment=settings.ENVIRONMENT,
        tracing_export=settings.ENABLE_TRACING,
        prometheus_port=settings.PROMETHEUS_PORT,
    )


def configure_tracing(resource: Resource, export: bool = False) -> None:
    tracer_provider = TracerProvider(resource=resource)
    if export:
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tracer_provider)


def configure_metrics(resource: Resource, prometheus_port: Optional[int] = None) -> None:
    # The reader registers itself with the default prometheus_client registry
    metrics.set_meter_provider(
        MeterProvider(resource=resource, metric_readers=[PrometheusMetricReader()]))
    if prometheus_port:
        start_http_server(prometheus_port)
        logger.info("Prometheus scrape endpoint listening on :%s", prometheus_port)


def instrument_fastapi(app) -> None:
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")


def instrument_sqlalchemy(engine) -> None:
    SQLAlchemyInstrumentor().instrument(engine=engine)


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def get_meter(name: str) -> metrics.Meter:
    return metrics.get_meter(name)


class trace_operation:
    """Run a block inside a span named after a business operation.

    Attributes (statement_id, document, currency...) go on the span and on the
    structlog events; failures mark the span as errored and re-raise.
    """

    def __init__(self, operation_name: str, **attributes):
        self.operation_name = operation_name
        self.attributes = {k: v for k, v in attributes.items() if v is not None}
        self.log = structlog.get_logger().bind(operation=operation_name, **self.attributes)
        self._span_cm = None
        self._started = 0.0

    def __enter__(self) -> trace.Span:
        self._started = time.perf_counter()
        self._span_cm = get_tracer("statement_desk").start_as_current_span(
            self.operation_name, attributes=self.attributes,
            record_exception=False, set_status_on_exception=False)
        span = self._span_cm.__enter__()
        self.log.debug("Operation started")
        return span

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = round((time.perf_counter() - self._started) * 1000, 1)
        span = trace.get_current_span()
        if exc_type is None:
            span.set_status(trace.Status(trace.StatusCode.OK))
            self.log.debug("Operation completed", duration_ms=duration_ms)
        else:
            span.record_exception(exc_val)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(exc_val)))
            self.log.error("Operation failed", duration_ms=duration_ms,
                           error_type=exc_type.__name__, error_message=str(exc_val))
        self._span_cm.__exit__(exc_type, exc_val, exc_tb)
        return False


class PerformanceMonitor:
    """Request timings and document rendering cost as OpenTelemetry instruments."""

    SLOW_REQUEST_MS = 200
    SLOW_RENDER_MS = 500

    def __init__(self):
        meter = get_meter("statement_desk.performance")
        self.request_duration = meter.create_histogram(
            name="api_request_duration_ms",
            description="API request duration in milliseconds",
            unit="ms",
        )
        self.pdf_render_duration = meter.create_histogram(
            name="pdf_render_duration_ms",
            description="PDF layout and serialization duration in milliseconds",
            unit="ms",
        )
        self.pdf_size = meter.create_histogram(
            name="pdf_size_bytes",
            description="Size of generated PDF documents",
            unit="By",
        )
        self.error_count = meter.create_counter(
            name="api_unhandled_errors_total",
            description="Requests that ended in an unhandled exception",
        )
        self.request_count_value = 0
        self.error_count_value = 0

    def record_request(self, endpoint: str, method: str, duration_ms: float, status_code: int):
        self.request_duration.record(duration_ms, {
            "endpoint": endpoint,
            "method": method,
            "status_code": str(status_code),
        })
        self.request_count_value += 1
        if duration_ms > self.SLOW_REQUEST_MS:
            structlog.get_logger().warning(
                "Slow API response", endpoint=endpoint, method=method,
                duration_ms=round(duration_ms, 1))

    def record_pdf_render(self, kind: str, duration_ms: float, size_bytes: int):
        self.pdf_render_duration.record(duration_ms, {"document": kind})
        self.pdf_size.record(size_bytes, {"document": kind})
        if duration_ms > self.SLOW_RENDER_MS:
            structlog.get_logger().warning(
                "Slow PDF render", document=kind, duration_ms=round(duration_ms, 1))

    def record_error(self, endpoint: str):
        self.error_count.add(1, {"endpoint": endpoint})
        self.error_count_value += 1


performance_monitor = PerformanceMonitor()

_domain_meter = get_meter("statement_desk.domain")
statement_create_counter = _domain_meter.create_counter(
    name="statement_create_total",
    description="Statements created, by currency"
)
statement_update_counter = _domain_meter.create_counter(
    name="statement_update_total",
    description="Statements updated or replaced, by resulting status"
)
statement_delete_counter = _domain_meter.create_counter(
    name="statement_delete_total",
    description="Statements deleted"
)
pdf_generated_counter = _domain_meter.create_counter(
    name="pdf_generated_total",
    description="PDF documents generated, by document kind"
)

__all__ = [
    "SERVICE_NAME",
    "SERVICE_VERSION",
    "configure_observability",
    "instrument_fastapi",
    "instrument_sqlalchemy",
    "get_tracer",
    "get_meter",
    "trace_operation",
    "PerformanceMonitor",
    "performance_monitor",
    "statement_create_counter",
    "statement_update_counter",
    "statement_delete_counter",
    "pdf_generated_counter",
]
