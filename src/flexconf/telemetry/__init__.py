"""flexconf telemetry - OpenTelemetry metrics for configuration loading.

Sources record how often they load, how long a load takes and how many
entries fail. Metrics are off until configured:

    ```python
    from flexconf.telemetry import configure_metrics

    configure_metrics(enabled=True, endpoint="http://localhost:4318")
    ```

Recorded metrics:
    - ``flexconf.source.loads``: counter, attributes ``source`` and ``status``
    - ``flexconf.source.load_duration``: histogram in seconds
    - ``flexconf.source.entry_errors``: counter of skipped entries
"""

from .metrics import (
    ENTRY_ERRORS,
    LOAD_DURATION,
    LOADS,
    SourceMetrics,
    configure_metrics,
    get_source_metrics,
    record_entry_error,
    record_load,
)

__all__ = [
    "ENTRY_ERRORS",
    "LOAD_DURATION",
    "LOADS",
    "SourceMetrics",
    "configure_metrics",
    "get_source_metrics",
    "record_entry_error",
    "record_load",
]
