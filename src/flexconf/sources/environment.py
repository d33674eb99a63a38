"""Process environment and in-memory sources."""

import logging
import os
from collections.abc import Mapping
from typing import Any

from flexconf.core.flatten import KEY_SEPARATOR, flatten_value

from .base import ConfigSource, ErrorCallback
from .models import EnvironmentSourceOptions

logger = logging.getLogger(__name__)


class EnvironmentSource(ConfigSource):
    """Environment variables as configuration.

    ``__`` separates hierarchy levels, so ``DATABASE__HOST`` is read as
    ``DATABASE:HOST``. With a prefix, only variables starting with it
    (case-insensitive) are read and the prefix is removed:

        >>> source = EnvironmentSource(
        ...     EnvironmentSourceOptions(prefix="MYAPP_"),
        ...     environ={"MYAPP_DB__HOST": "db", "HOME": "/root"},
        ... )
        >>> dict(source.load())
        {'DB:HOST': 'db'}
    """

    def __init__(
        self,
        options: EnvironmentSourceOptions | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        on_load_error: ErrorCallback | None = None,
    ):
        options = options or EnvironmentSourceOptions()
        super().__init__(
            optional=True,
            reload_interval=options.reload_interval,
            on_load_error=on_load_error,
        )
        self.options = options
        self._environ = environ

    @property
    def name(self) -> str:
        if self.options.prefix:
            return f"environment:{self.options.prefix}"
        return "environment"

    def _build_snapshot(self) -> dict[str, str | None]:
        environ = self._environ if self._environ is not None else os.environ
        prefix = self.options.prefix or ""
        data: dict[str, str | None] = {}
        for name, value in environ.items():
            if prefix:
                if not name.upper().startswith(prefix.upper()):
                    continue
                name = name[len(prefix) :]
            if not name:
                continue
            data[name.replace("__", KEY_SEPARATOR)] = value
        return data


class MemorySource(ConfigSource):
    """A fixed map, nested or already flat (``{"db:host": "x"}``)."""

    def __init__(self, data: Mapping[str, Any] | None = None, *, name: str = "memory"):
        super().__init__(optional=True)
        self._name = name
        self._data: Mapping[str, Any] = dict(data or {})

    @property
    def name(self) -> str:
        return self._name

    def set(self, data: Mapping[str, Any]) -> None:
        """Replace the data; published on the next ``load``."""
        self._data = dict(data)

    def _build_snapshot(self) -> dict[str, str | None]:
        return dict(flatten_value(self._data))
