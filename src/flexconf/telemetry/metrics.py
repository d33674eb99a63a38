"""
Load metrics for configuration sources, recorded with OpenTelemetry.

Three instruments are created when metrics are configured:

- ``flexconf.source.loads``: counter of finished loads by source and status
- ``flexconf.source.load_duration``: histogram of load time in seconds
- ``flexconf.source.entry_errors``: counter of remote entries skipped
  because they failed to load

Until ``configure_metrics`` installs a reader (an OTLP endpoint or any
``MetricReader``), recording does nothing.
"""

import logging
from typing import Any

from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from flexconf.core.version import PACKAGE_NAME, PACKAGE_VERSION

logger = logging.getLogger(__name__)

LOADS = "flexconf.source.loads"
LOAD_DURATION = "flexconf.source.load_duration"
ENTRY_ERRORS = "flexconf.source.entry_errors"

_source_metrics: "SourceMetrics | None" = None


class SourceMetrics:
    """Instruments shared by every configuration source in the process."""

    def __init__(self, meter: Meter, provider: MeterProvider | None = None) -> None:
        self.provider = provider
        self.loads = meter.create_counter(
            LOADS, unit="1", description="Configuration source loads"
        )
        self.load_duration = meter.create_histogram(
            LOAD_DURATION, unit="s", description="Time spent loading a configuration source"
        )
        self.entry_errors = meter.create_counter(
            ENTRY_ERRORS, unit="1", description="Remote entries skipped because they failed"
        )

    def shutdown(self) -> None:
        if self.provider is not None:
            self.provider.shutdown()


def configure_metrics(
    *,
    enabled: bool = True,
    endpoint: str | None = None,
    export_interval: int = 60,
    resource_attributes: dict[str, Any] | None = None,
    readers: list[MetricReader] | None = None,
) -> None:
    """Turn source metrics on or off.

    Args:
        enabled: False removes any previous configuration
        endpoint: OTLP/HTTP collector URL; ``/v1/metrics`` is appended if missing
        export_interval: Seconds between OTLP exports
        resource_attributes: Extra attributes on the exported resource
        readers: Additional readers, e.g. ``InMemoryMetricReader`` in tests
    """
    global _source_metrics

    previous = _source_metrics
    _source_metrics = None
    if previous is not None:
        try:
            previous.shutdown()
        except Exception as e:
            logger.debug(f"Error shutting down previous meter provider: {e}")

    if not enabled:
        logger.info("Source metrics disabled")
        return

    metric_readers = list(readers or [])
    if endpoint:
        url = endpoint if endpoint.endswith("/v1/metrics") else f"{endpoint.rstrip('/')}/v1/metrics"
        metric_readers.append(
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=url),
                export_interval_millis=export_interval * 1000,
            )
        )
        logger.info(f"Exporting source metrics to {url}")

    if not metric_readers:
        logger.warning("Source metrics enabled but no endpoint or reader given; not recording")
        return

    attributes: dict[str, Any] = {"service.name": PACKAGE_NAME, "service.version": PACKAGE_VERSION}
    attributes.update(resource_attributes or {})

    # A private provider: the global one can only be set once per process
    provider = MeterProvider(resource=Resource.create(attributes), metric_readers=metric_readers)
    _source_metrics = SourceMetrics(provider.get_meter(PACKAGE_NAME, PACKAGE_VERSION), provider)
    logger.info("Source metrics configured")


def get_source_metrics() -> SourceMetrics | None:
    """Return the configured instruments, or None when metrics are off."""
    return _source_metrics


def record_load(source: str, success: bool, duration: float) -> None:
    """Record one finished load of ``source``."""
    instruments = _source_metrics
    if instruments is None:
        return
    try:
        instruments.loads.add(
            1, attributes={"source": source, "status": "success" if success else "failure"}
        )
        instruments.load_duration.record(duration, attributes={"source": source})
    except Exception as e:
        logger.debug(f"Failed to record load metrics for {source}: {e}")


def record_entry_error(source: str, error: BaseException) -> None:
    """Record one remote entry skipped while loading ``source``."""
    instruments = _source_metrics
    if instruments is None:
        return
    try:
        instruments.entry_errors.add(
            1, attributes={"source": source, "error": type(error).__name__}
        )
    except Exception as e:
        logger.debug(f"Failed to record entry error for {source}: {e}")
