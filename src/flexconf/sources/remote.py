"""
Remote store sources.

A ``RemoteStore`` adapts one backend (AWS Parameter Store, AWS Secrets
Manager, Azure Key Vault, Azure App Configuration, HashiCorp Vault, or an
in-memory table) to a small contract: enumerate entries, fetch a value, and
map a backend name to a configuration key. ``RemoteSourceLoader`` does the
rest the same way for every backend:

1. list every entry (all pages)
2. skip disabled entries
3. map each name to a key (plus an optional name transform)
4. fetch the value, with the configured version stage if the store has stages
5. expand string lists into indexed keys
6. flatten JSON values when JSON processing is on and the allow-list matches
7. publish the new flat map atomically

Per-entry failures in an optional source are logged, reported through
``on_load_error`` and skipped; the remaining entries still load. In a required
source they abort the load.

## Example

```python
store = ParameterStore("/myapp/prod", region_name="eu-west-1")
options = RemoteSourceOptions(json_processing=True, reload_interval=timedelta(minutes=5))

with RemoteSourceLoader(store, options) as source:
    source.load()
    timeout = source.tree().http.timeout.convert(int)
```
"""

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from flexconf.core.errors import MalformedValue, SourceError, SourceUnavailable
from flexconf.core.flatten import KEY_SEPARATOR, flatten_json
from flexconf.telemetry import record_entry_error

from .base import ConfigSource, ErrorCallback
from .models import RemoteSourceOptions

logger = logging.getLogger(__name__)

NameTransform = Callable[[str, str], str]


class EntryKind(str, Enum):
    """How an entry value is interpreted."""

    PLAIN = "plain"
    LIST = "list"
    SECURE = "secure"
    BINARY = "binary"


@dataclass(frozen=True)
class RemoteEntry:
    """One entry as enumerated by a remote store.

    Attributes:
        name: Backend name, e.g. ``/myapp/prod/db/host`` or ``db--host``
        raw_value: Value returned by the enumeration, if the backend returns
            values while listing
        kind: How the value is interpreted
        enabled: Disabled entries are skipped
        version_stage: Stage the listed value belongs to, if known
    """

    name: str
    raw_value: str | bytes | None = None
    kind: EntryKind = EntryKind.PLAIN
    enabled: bool = True
    version_stage: str | None = None


class RemoteStore(ABC):
    """Abstract adapter for a remote configuration backend.

    Subclasses must implement ``identity`` and ``list_entries``. Stores whose
    enumeration does not return values, or that support version stages,
    override ``get_entry_value``.
    """

    supports_version_stages: bool = False
    list_delimiter: str = ","

    @property
    @abstractmethod
    def identity(self) -> str:
        """Identity of the backend used in errors and logs (path, ARN, URL)."""

    @abstractmethod
    def list_entries(self) -> Iterable[RemoteEntry]:
        """Enumerate every entry, following all pages."""

    def get_entry_value(
        self, entry: RemoteEntry, version_stage: str | None = None
    ) -> str | bytes | None:
        """Fetch the value of an entry.

        Args:
            entry: Entry as returned by ``list_entries``
            version_stage: Requested stage; only passed when the store
                declares ``supports_version_stages``

        Raises:
            EntryNotFound: If the entry no longer exists
            VersionStageNotFound: If the stage does not exist for the entry
        """
        return entry.raw_value

    def to_config_key(self, name: str) -> str:
        """Map a backend name to a configuration key."""
        return name

    def close(self) -> None:
        """Release the backend client."""

    def __enter__(self) -> "RemoteStore":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class RemoteSourceLoader(ConfigSource):
    """Load a remote store into a flat snapshot, optionally on a timer."""

    def __init__(
        self,
        store: RemoteStore,
        options: RemoteSourceOptions | None = None,
        *,
        on_load_error: ErrorCallback | None = None,
        name_transform: NameTransform | None = None,
    ):
        """Create a loader.

        Args:
            store: Backend adapter
            options: Loader options; defaults to an optional source without reload
            on_load_error: Called with the error whenever a failure is swallowed
            name_transform: Called as ``transform(key, entry_name)`` after the
                store maps a name to a key; returns the final key
        """
        options = options or RemoteSourceOptions()
        super().__init__(
            optional=options.optional,
            reload_interval=options.reload_interval,
            on_load_error=on_load_error,
        )
        self.store = store
        self.options = options
        self._name_transform = name_transform
        self._allow_list = self._normalize_allow_list(options.json_processing_allow_list)

        if options.version_stage and not store.supports_version_stages:
            logger.warning(
                f"Store {store.identity} does not support version stages; "
                f"ignoring version_stage={options.version_stage!r}"
            )

    @property
    def name(self) -> str:
        return self.store.identity

    def _close_resources(self) -> None:
        self.store.close()

    def _build_snapshot(self) -> dict[str, str | None]:
        data: dict[str, str | None] = {}
        for entry in self._list_entries():
            if not entry.enabled:
                logger.debug(f"Skipping disabled entry '{entry.name}' from {self.name}")
                continue
            try:
                data.update(self._process_entry(entry))
            except SourceError as e:
                if not self.optional:
                    raise
                self._skip_entry(entry, e)
        return data

    def _list_entries(self) -> list[RemoteEntry]:
        try:
            return list(self.store.list_entries())
        except SourceError:
            raise
        except Exception as e:
            raise SourceUnavailable(self.name, f"Failed to list entries: {e}") from e

    def _process_entry(self, entry: RemoteEntry) -> dict[str, str | None]:
        key = self._config_key(entry)
        value = self._decode(entry, self._fetch_value(entry))

        scratch: dict[str, str | None] = {}
        if entry.kind is EntryKind.LIST:
            self._expand_list(key, value, scratch)
        elif entry.kind is not EntryKind.BINARY and value and self._should_flatten(key):
            flatten_json(value, key, scratch)
        else:
            scratch[key] = value
        return scratch

    def _config_key(self, entry: RemoteEntry) -> str:
        key = self.store.to_config_key(entry.name)
        if self._name_transform is not None:
            try:
                key = self._name_transform(key, entry.name)
            except Exception as e:
                raise MalformedValue(
                    self.name, entry.name, f"Name transform failed for '{entry.name}': {e}"
                ) from e
        if not key:
            raise MalformedValue(
                self.name, entry.name, f"Entry '{entry.name}' maps to an empty key"
            )
        return key

    def _fetch_value(self, entry: RemoteEntry) -> str | bytes | None:
        stage = self.options.version_stage if self.store.supports_version_stages else None
        try:
            return self.store.get_entry_value(entry, stage)
        except SourceError:
            raise
        except Exception as e:
            raise SourceUnavailable(
                self.name, f"Failed to fetch entry '{entry.name}': {e}"
            ) from e

    def _decode(self, entry: RemoteEntry, raw: str | bytes | None) -> str | None:
        if raw is None:
            return None
        if isinstance(raw, (bytes, bytearray)):
            if entry.kind is EntryKind.BINARY:
                return base64.b64encode(raw).decode("ascii")
            try:
                return bytes(raw).decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedValue(
                    self.name, entry.name, f"Entry '{entry.name}' is not valid UTF-8: {e}"
                ) from e
        if entry.kind is EntryKind.BINARY:
            try:
                base64.b64decode(raw, validate=True)
            except (binascii.Error, ValueError) as e:
                raise MalformedValue(
                    self.name, entry.name, f"Entry '{entry.name}' is not valid base64: {e}"
                ) from e
        return raw

    def _expand_list(self, key: str, value: str | None, output: dict[str, str | None]) -> None:
        if value is None:
            output[key] = None
            return
        items = [item.strip() for item in value.split(self.store.list_delimiter)]
        for index, item in enumerate(item for item in items if item):
            output[f"{key}{KEY_SEPARATOR}{index}"] = item

    def _normalize_allow_list(self, items: Iterable[str] | None) -> list[tuple[str, bool]]:
        normalized = []
        for item in items or ():
            wildcard = item.endswith("*")
            base = item.rstrip("*")
            key = self.store.to_config_key(base) if base else ""
            normalized.append((key.casefold(), wildcard))
        return normalized

    def _should_flatten(self, key: str) -> bool:
        if not self.options.json_processing:
            return False
        if not self._allow_list:
            return True
        folded = key.casefold()
        for item, wildcard in self._allow_list:
            if wildcard and folded.startswith(item):
                return True
            if folded == item or folded.startswith(item + KEY_SEPARATOR):
                return True
        return False

    def _skip_entry(self, entry: RemoteEntry, error: SourceError) -> None:
        logger.warning(f"Skipping entry '{entry.name}' from {self.name}: {error.message}")
        record_entry_error(self.name, error)
        self._report_error(error)
