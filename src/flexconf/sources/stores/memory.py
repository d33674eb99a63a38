"""
In-process remote store.

``MemoryStore`` behaves like a paginated remote backend without any network:
useful for tests, local development and as the reference implementation of
the ``RemoteStore`` contract.
"""

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping

from flexconf.core.errors import VersionStageNotFound

from ..remote import RemoteEntry, RemoteStore

logger = logging.getLogger(__name__)


class MemoryStore(RemoteStore):
    """Remote store backed by a list of entries.

    Args:
        entries: Entries returned by ``list_entries``
        page_size: When set, the listing is served in pages of this size
        identity: Identity used in errors and logs
        versions: Optional ``{name: {stage: value}}`` table used when a
            version stage is requested
        separator: Name separator mapped to ``:`` in keys

    Example:
        >>> store = MemoryStore([RemoteEntry("db/host", "localhost")])
        >>> store.to_config_key("db/host")
        'db:host'
    """

    supports_version_stages = True

    def __init__(
        self,
        entries: Iterable[RemoteEntry] = (),
        *,
        page_size: int | None = None,
        identity: str = "memory",
        versions: Mapping[str, Mapping[str, str | bytes | None]] | None = None,
        separator: str = "/",
    ):
        if page_size is not None and page_size <= 0:
            raise ValueError("page_size must be positive")
        self._entries = list(entries)
        self._versions = {name: dict(stages) for name, stages in (versions or {}).items()}
        self._identity = identity
        self._lock = threading.Lock()
        self.page_size = page_size
        self.separator = separator
        self.pages_served = 0
        self.closed = False

    @property
    def identity(self) -> str:
        return self._identity

    def set_entries(self, entries: Iterable[RemoteEntry]) -> None:
        """Replace every entry; the next load sees the new set."""
        with self._lock:
            self._entries = list(entries)

    def set_version(self, name: str, stage: str, value: str | bytes | None) -> None:
        with self._lock:
            self._versions.setdefault(name, {})[stage] = value

    def list_entries(self) -> Iterator[RemoteEntry]:
        for page in self._pages():
            self.pages_served += 1
            yield from page

    def _pages(self) -> Iterator[list[RemoteEntry]]:
        with self._lock:
            entries = list(self._entries)
        if not self.page_size:
            yield entries
            return
        for start in range(0, len(entries), self.page_size):
            yield entries[start : start + self.page_size]

    def get_entry_value(
        self, entry: RemoteEntry, version_stage: str | None = None
    ) -> str | bytes | None:
        if version_stage is None or entry.version_stage == version_stage:
            return entry.raw_value
        with self._lock:
            stages = self._versions.get(entry.name, {})
            if version_stage in stages:
                return stages[version_stage]
        raise VersionStageNotFound(self.identity, entry.name, version_stage)

    def to_config_key(self, name: str) -> str:
        if not self.separator:
            return name
        return name.strip(self.separator).replace(self.separator, ":")

    def close(self) -> None:
        self.closed = True
