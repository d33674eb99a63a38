"""
Global pytest configuration and fixtures.
"""

import pytest

from flexconf.sources import EntryKind, RemoteEntry
from flexconf.telemetry import metrics


@pytest.fixture(autouse=True)
def disable_metrics():
    """Keep metrics unconfigured between tests.

    Tests that exercise metrics configure their own in-memory reader; this
    resets the module-level instruments afterwards so no other test records into
    it.
    """
    previous = metrics._source_metrics
    metrics._source_metrics = None
    yield
    metrics._source_metrics = previous


@pytest.fixture
def app_entries() -> list[RemoteEntry]:
    """A small parameter tree as a remote store would list it."""
    return [
        RemoteEntry("/app/db/host", "localhost"),
        RemoteEntry("/app/db/port", "5432"),
        RemoteEntry("/app/hosts", "a, b,,c", kind=EntryKind.LIST),
        RemoteEntry("/app/features", '{"beta": true, "limits": [10, 20]}'),
        RemoteEntry("/app/disabled", "nope", enabled=False),
    ]
