"""Pydantic models for source options and the sources config file.

Options are immutable once a source is built. The same models are used when
sources are declared in a ``sources.yaml`` file:

```yaml
sources:
  remote:
    app-params:
      type: parameter_store
      settings:
        path: /myapp/prod
        region_name: eu-west-1
      options:
        optional: false
        reload_interval: 300
        json_processing: true
        json_processing_allow_list: ["/myapp/prod/features"]
  files:
    defaults:
      path: config/defaults.yaml
  environment:
    prefix: MYAPP_
```
"""

from datetime import timedelta
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator

from flexconf.models import ConfigBaseModel

StoreType = Literal[
    "parameter_store",
    "secrets_manager",
    "key_vault",
    "app_configuration",
    "vault",
]

FileFormat = Literal["yaml", "json", "dotenv"]


def _check_interval(value: timedelta | None) -> timedelta | None:
    if value is not None and value <= timedelta(0):
        raise ValueError("reload_interval must be positive")
    return value


class RemoteSourceOptions(ConfigBaseModel):
    """Options for a remote store source.

    Attributes:
        optional: When True, load failures are reported through the error
            callback and the previous snapshot is kept. When False, the
            explicit load raises.
        reload_interval: Interval between background reloads; None disables
            reloading
        json_processing: Flatten entry values that are JSON objects or arrays
        json_processing_allow_list: Entry names whose values are flattened
            when json_processing is on. None or empty means every entry.
            An item matches an entry equal to it or nested below it; an item
            ending in ``*`` is a plain prefix.
        version_stage: Version stage or label to read, for stores that
            support it (Secrets Manager, Key Vault, Vault)

    Example:
        >>> RemoteSourceOptions(optional=False, reload_interval=300).reload_interval
        datetime.timedelta(seconds=300)
    """

    optional: bool = True
    reload_interval: timedelta | None = None
    json_processing: bool = False
    json_processing_allow_list: tuple[str, ...] | None = None
    version_stage: str | None = None

    @field_validator("reload_interval")
    @classmethod
    def validate_reload_interval(cls, value: timedelta | None) -> timedelta | None:
        return _check_interval(value)


class FileSourceOptions(ConfigBaseModel):
    """Options for YAML, JSON and dotenv file sources.

    Attributes:
        optional: A missing optional file loads as an empty snapshot
        reload_interval: Interval between background re-reads of the file
    """

    optional: bool = True
    reload_interval: timedelta | None = None

    @field_validator("reload_interval")
    @classmethod
    def validate_reload_interval(cls, value: timedelta | None) -> timedelta | None:
        return _check_interval(value)


class EnvironmentSourceOptions(ConfigBaseModel):
    """Options for the process environment source.

    Attributes:
        prefix: Only variables starting with this prefix (case-insensitive)
            are read, and the prefix is removed from the key
        reload_interval: Interval between background re-reads
    """

    prefix: str | None = None
    reload_interval: timedelta | None = None

    @field_validator("reload_interval")
    @classmethod
    def validate_reload_interval(cls, value: timedelta | None) -> timedelta | None:
        return _check_interval(value)


class RemoteSourceConfigModel(ConfigBaseModel):
    """A remote store declared in the sources config file.

    Attributes:
        type: Which store to build
        settings: Keyword arguments passed to the store constructor
        options: Loader options
    """

    type: StoreType
    settings: dict[str, Any] = Field(default_factory=dict)
    options: RemoteSourceOptions = Field(default_factory=RemoteSourceOptions)


class FileSourceConfigModel(ConfigBaseModel):
    """A local file declared in the sources config file.

    Attributes:
        path: File path; relative paths resolve against the config file
        format: File format; inferred from the suffix when omitted
        options: File source options
    """

    path: Path
    format: FileFormat | None = None
    options: FileSourceOptions = Field(default_factory=FileSourceOptions)


class SourcesConfigModel(ConfigBaseModel):
    """Root of the sources config file.

    Attributes:
        remote: Remote store sources by name
        files: File sources by name
        environment: Environment source options; None means no environment source
    """

    remote: dict[str, RemoteSourceConfigModel] = Field(default_factory=dict)
    files: dict[str, FileSourceConfigModel] = Field(default_factory=dict)
    environment: EnvironmentSourceOptions | None = None
