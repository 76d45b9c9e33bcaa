"""
OpenTelemetry Metrics

Statement counters and latency histograms for the database adapters.
"""

import logging
from typing import Any, Dict, Optional

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import SERVICE_NAME, Resource

from .tracing import DEFAULT_SERVICE_NAME

logger = logging.getLogger(__name__)

_meter: Optional[metrics.Meter] = None

_counters: Dict[str, metrics.Counter] = {}
_histograms: Dict[str, metrics.Histogram] = {}


def init_metrics(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: Optional[str] = None,
    console_export: bool = False,
    export_interval_ms: int = 60000
) -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Args:
        service_name: Name of the service
        otlp_endpoint: OTLP exporter endpoint
        console_export: Enable console export for debugging
        export_interval_ms: Export interval in milliseconds

    Returns:
        Configured meter
    """
    global _meter

    readers = []

    if otlp_endpoint:
        readers.append(PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=otlp_endpoint, insecure=True),
            export_interval_millis=export_interval_ms
        ))
        logger.info(f"OTel metrics: OTLP exporter configured -> {otlp_endpoint}")

    if console_export:
        readers.append(PeriodicExportingMetricReader(
            ConsoleMetricExporter(),
            export_interval_millis=export_interval_ms
        ))
        logger.info("OTel metrics: Console exporter enabled")

    resource = Resource.create({SERVICE_NAME: service_name})
    provider = MeterProvider(resource=resource, metric_readers=readers)
    metrics.set_meter_provider(provider)

    _meter = provider.get_meter(service_name)
    _counters.clear()
    _histograms.clear()
    _init_standard_metrics()

    logger.info(f"OTel metrics initialized: {service_name}")
    return _meter


def _init_standard_metrics():
    """Create the database instruments on the current meter."""
    meter = get_meter()

    _counters["db_statements_total"] = meter.create_counter(
        "db_statements_total",
        description="Total database statements issued",
        unit="1"
    )

    _counters["db_schema_noops_total"] = meter.create_counter(
        "db_schema_noops_total",
        description="Schema statements skipped because the object already existed",
        unit="1"
    )

    _histograms["db_query_duration_seconds"] = meter.create_histogram(
        "db_query_duration_seconds",
        description="Database statement duration",
        unit="s"
    )


def get_meter() -> metrics.Meter:
    """Get the global meter."""
    global _meter
    if _meter is None:
        _meter = metrics.get_meter(DEFAULT_SERVICE_NAME)
    return _meter


def _ensure_instruments() -> None:
    if not _counters:
        _init_standard_metrics()


def record_counter(
    name: str,
    value: int = 1,
    attributes: Dict[str, Any] = None
):
    """Record a counter metric."""
    _ensure_instruments()
    if name in _counters:
        _counters[name].add(value, attributes or {})


def record_histogram(
    name: str,
    value: float,
    attributes: Dict[str, Any] = None
):
    """Record a histogram metric."""
    _ensure_instruments()
    if name in _histograms:
        _histograms[name].record(value, attributes or {})
