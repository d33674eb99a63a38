"""
Base class for configuration sources.

A ``ConfigSource`` turns some backing data (a remote store, a file, the
process environment) into an immutable flat snapshot. The base class owns
everything that is the same for every source:

- publishing a new snapshot with a single reference swap
- the optional-vs-required error policy for whole loads
- the reload timer and the "one load at a time" rule
- change and error callbacks
- idempotent disposal and the context manager protocol

## Implementation Requirements

Subclasses implement:

- `name`: identity used in logs, errors and metrics
- `_build_snapshot`: build and return a complete flat map, or raise a
  `SourceError`

and may override `_close_resources` to release clients.

## Reload Policy

Only one load runs at a time per source. A timer tick that arrives while a
load is still running is skipped; an explicit `load()`/`reload()` waits for
the running load to finish and then runs its own.

A load still running when `close()` is called finishes without publishing
its result or firing callbacks; the source stays disposed.

## Error Policy

- Required source, explicit load: the `SourceError` propagates to the caller
  and the previous snapshot stays published.
- Optional source, or any timer-triggered load: the error is logged, passed
  to `on_load_error`, and the previous snapshot (empty before the first
  successful load) stays published.

## Example

```python
with YamlFileSource("app.yaml") as source:
    source.load()
    tree = source.tree()
    port = tree.server.port.convert(int)
```
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any

from flexconf.core.errors import ConfigError, SourceError, SourceUnavailable
from flexconf.core.tree import ConfigTree
from flexconf.telemetry import record_load

from .reload import ReloadTimer

logger = logging.getLogger(__name__)

Snapshot = Mapping[str, str | None]
ChangeCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[SourceError], None]

EMPTY_SNAPSHOT: Snapshot = MappingProxyType({})


class LoadStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"
    DISPOSED = "disposed"


@dataclass
class LoadState:
    """Mutable load state owned by exactly one source."""

    snapshot: Snapshot = field(default_factory=lambda: EMPTY_SNAPSHOT)
    status: LoadStatus = LoadStatus.UNINITIALIZED
    last_error: SourceError | None = None
    last_loaded_at: float | None = None
    load_count: int = 0


class ConfigSource(ABC):
    """Abstract base class for every configuration source."""

    def __init__(
        self,
        *,
        optional: bool = True,
        reload_interval: timedelta | None = None,
        on_load_error: ErrorCallback | None = None,
    ):
        self.optional = optional
        self.reload_interval = reload_interval
        self._on_load_error = on_load_error
        self._state = LoadState()
        self._load_lock = threading.Lock()
        self._callbacks_lock = threading.Lock()
        self._change_callbacks: list[ChangeCallback] = []
        self._timer: ReloadTimer | None = None
        self._closed = False
        self._lifecycle_lock = threading.Lock()

    @property
    @abstractmethod
    def name(self) -> str:
        """Identity of the source (URI, ARN, path or name)."""

    @abstractmethod
    def _build_snapshot(self) -> dict[str, str | None]:
        """Build a complete flat map from the backing data."""

    def _close_resources(self) -> None:
        """Release clients or connections. Override if needed."""

    # State

    @property
    def status(self) -> LoadStatus:
        return self._state.status

    @property
    def last_error(self) -> SourceError | None:
        return self._state.last_error

    @property
    def last_loaded_at(self) -> float | None:
        return self._state.last_loaded_at

    @property
    def load_count(self) -> int:
        """Number of successful loads so far."""
        return self._state.load_count

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> Snapshot:
        """Return the latest published snapshot."""
        return self._state.snapshot

    def tree(self) -> ConfigTree:
        """Return a live tree view over this source."""
        return ConfigTree.from_source(self)

    # Loading

    def load(self) -> Snapshot:
        """Load the source synchronously and start the reload timer if configured.

        Returns:
            The snapshot published after the load

        Raises:
            SourceError: If a required source fails to load
            ConfigError: If the source is already closed
        """
        if self._closed:
            raise ConfigError(f"Source {self.name} is closed")
        try:
            return self._run_load(raise_errors=True, blocking=True)
        finally:
            self._ensure_timer()

    def reload(self) -> Snapshot:
        """Reload the source now. Same error policy as ``load``."""
        return self.load()

    def _on_timer_tick(self) -> None:
        if self._closed:
            return
        self._run_load(raise_errors=False, blocking=False)

    def _run_load(self, *, raise_errors: bool, blocking: bool) -> Snapshot:
        if not self._load_lock.acquire(blocking=blocking):
            logger.debug(f"Reload of {self.name} skipped: previous load still running")
            return self._state.snapshot

        published: Snapshot | None = None
        error: SourceError | None = None
        started = time.monotonic()
        try:
            with self._lifecycle_lock:
                if self._closed:
                    return self._state.snapshot
                self._state.status = LoadStatus.LOADING
            try:
                data = self._build_snapshot()
            except SourceError as e:
                error = e
            except Exception as e:
                error = SourceUnavailable(self.name, f"Load failed: {e}")
                error.__cause__ = e

            with self._lifecycle_lock:
                # Closed while loading: the result is dropped
                if self._closed:
                    logger.debug(f"Discarding load of {self.name}: source closed")
                    return self._state.snapshot
                if error is None:
                    published = MappingProxyType(dict(data))
                    self._state.snapshot = published
                    self._state.status = LoadStatus.LOADED
                    self._state.last_error = None
                    self._state.last_loaded_at = time.time()
                    self._state.load_count += 1
                else:
                    self._state.status = LoadStatus.FAILED
                    self._state.last_error = error
        finally:
            self._load_lock.release()

        duration = time.monotonic() - started
        record_load(self.name, error is None, duration)

        if error is not None:
            if raise_errors and not self.optional:
                raise error
            logger.warning(f"Failed to load configuration from {self.name}: {error.message}")
            self._report_error(error)
            return self._state.snapshot

        logger.debug(f"Loaded {len(published or {})} keys from {self.name} in {duration:.3f}s")
        self._notify_change(published or EMPTY_SNAPSHOT)
        return self._state.snapshot

    def _ensure_timer(self) -> None:
        with self._lifecycle_lock:
            if self.reload_interval is None or self._closed or self._timer is not None:
                return
            self._timer = ReloadTimer(
                self.reload_interval.total_seconds(), self._on_timer_tick, name=self.name
            )
            self._timer.start()

    # Callbacks

    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a callback invoked with the new snapshot after each successful load.

        Returns:
            A function that unregisters the callback
        """
        with self._callbacks_lock:
            self._change_callbacks.append(callback)

        def unsubscribe() -> None:
            with self._callbacks_lock:
                if callback in self._change_callbacks:
                    self._change_callbacks.remove(callback)

        return unsubscribe

    def _notify_change(self, snapshot: Snapshot) -> None:
        with self._callbacks_lock:
            callbacks = list(self._change_callbacks)
        for callback in callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.warning(f"Change callback for {self.name} failed: {e}")

    def _report_error(self, error: SourceError) -> None:
        if self._on_load_error is None:
            return
        try:
            self._on_load_error(error)
        except Exception as e:
            logger.warning(f"Load error callback for {self.name} failed: {e}")

    # Disposal

    def close(self) -> None:
        """Stop the reload timer and release resources. Idempotent."""
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
            self._state.status = LoadStatus.DISPOSED
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.stop()
        try:
            self._close_resources()
        except Exception as e:
            logger.warning(f"Error closing source {self.name}: {e}")
        logger.debug(f"Closed source {self.name}")

    def __enter__(self) -> "ConfigSource":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, status={self.status.value})"
