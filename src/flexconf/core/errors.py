"""Error taxonomy for configuration sources.

Every error raised while loading a source carries the identity of that source
(a store path, ARN, vault URL or file name) so that a failure in a stack of
layered sources can be traced back to where it came from.

JSON decoding errors never appear here: the flatten engine recovers from them
locally by storing the raw text as an opaque scalar.
"""


class ConfigError(Exception):
    """Base class for all flexconf errors."""


class SourceError(ConfigError):
    """A failure attributed to one configuration source.

    Attributes:
        source: Identity of the originating source (URI, ARN, path, name)
        message: Human-readable description without the source prefix
    """

    def __init__(self, source: str, message: str):
        super().__init__(f"[{source}] {message}")
        self.source = source
        self.message = message


class SourceUnavailable(SourceError):
    """The backing store could not be reached or refused the request."""


class EntryNotFound(SourceError):
    """A required entry does not exist in the backing store."""

    def __init__(self, source: str, entry: str | None, message: str | None = None):
        super().__init__(source, message or f"Entry not found: {entry}")
        self.entry = entry


class VersionStageNotFound(EntryNotFound):
    """The requested version stage does not exist for an entry."""

    def __init__(self, source: str, entry: str | None, version_stage: str):
        super().__init__(
            source,
            entry,
            f"Version stage '{version_stage}' not found for entry: {entry}",
        )
        self.version_stage = version_stage


class MalformedValue(SourceError):
    """An entry value could not be decoded (bad base64, bad encoding, bad file)."""

    def __init__(self, source: str, entry: str | None, message: str):
        super().__init__(source, message)
        self.entry = entry
