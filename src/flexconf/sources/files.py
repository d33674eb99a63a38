"""
Local file sources: YAML, JSON and dotenv.

All three read the whole file on every load and publish a fresh snapshot, so a
reload interval picks up edits to the file. A missing file is an empty
snapshot for an optional source and ``SourceUnavailable`` for a required one;
a file that cannot be parsed raises ``MalformedValue``.
"""

import io
import json
import logging
from abc import abstractmethod
from pathlib import Path

import yaml
from dotenv import dotenv_values

from flexconf.core.errors import MalformedValue, SourceUnavailable
from flexconf.core.flatten import KEY_SEPARATOR, flatten_json, flatten_value

from .base import ConfigSource, ErrorCallback
from .models import FileSourceOptions

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> None:
    raise ValueError(f"Non-standard JSON constant: {name}")


class FileSource(ConfigSource):
    """Base class for sources backed by a single local file."""

    def __init__(
        self,
        path: str | Path,
        options: FileSourceOptions | None = None,
        *,
        on_load_error: ErrorCallback | None = None,
    ):
        options = options or FileSourceOptions()
        super().__init__(
            optional=options.optional,
            reload_interval=options.reload_interval,
            on_load_error=on_load_error,
        )
        self.path = Path(path)
        self.options = options

    @property
    def name(self) -> str:
        return str(self.path)

    def _build_snapshot(self) -> dict[str, str | None]:
        if not self.path.exists():
            if self.optional:
                logger.debug(f"Optional configuration file not found: {self.path}")
                return {}
            raise SourceUnavailable(self.name, f"Configuration file not found: {self.path}")

        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailable(self.name, f"Failed to read {self.path}: {e}") from e

        return self._parse(text)

    @abstractmethod
    def _parse(self, text: str) -> dict[str, str | None]:
        """Turn the file contents into a flat map."""


class YamlFileSource(FileSource):
    """YAML file whose root is a mapping."""

    def _parse(self, text: str) -> dict[str, str | None]:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MalformedValue(self.name, None, f"Invalid YAML in {self.path}: {e}") from e

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise MalformedValue(
                self.name, None, f"YAML root must be a mapping, got {type(document).__name__}"
            )
        return dict(flatten_value(document))


class JsonFileSource(FileSource):
    """JSON file whose root is an object. Numbers keep their original text."""

    def _parse(self, text: str) -> dict[str, str | None]:
        if not text.strip():
            return {}
        try:
            document = json.loads(text, parse_constant=_reject_constant)
        except ValueError as e:
            raise MalformedValue(self.name, None, f"Invalid JSON in {self.path}: {e}") from e

        if not isinstance(document, dict):
            raise MalformedValue(
                self.name, None, f"JSON root must be an object, got {type(document).__name__}"
            )
        return dict(flatten_json(text))


class DotEnvFileSource(FileSource):
    """``.env`` file. ``__`` in a variable name separates hierarchy levels."""

    def _parse(self, text: str) -> dict[str, str | None]:
        values = dotenv_values(stream=io.StringIO(text))
        return {key.replace("__", KEY_SEPARATOR): value for key, value in values.items()}
