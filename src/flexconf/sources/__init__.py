"""flexconf sources - where configuration comes from.

Every source produces an immutable flat snapshot and can reload it on a timer:

- `RemoteSourceLoader`: any `RemoteStore` (Parameter Store, Secrets Manager,
  Key Vault, App Configuration, Vault, memory)
- `YamlFileSource`, `JsonFileSource`, `DotEnvFileSource`: local files
- `EnvironmentSource`: process environment
- `MemorySource`: a fixed map

Sources can also be declared in a sources.yaml file and built with
`load_sources_config` and `build_sources`.
"""

from .base import ConfigSource, LoadState, LoadStatus, Snapshot
from .environment import EnvironmentSource, MemorySource
from .files import DotEnvFileSource, FileSource, JsonFileSource, YamlFileSource
from .loader import build_sources, load_sources_config
from .models import (
    EnvironmentSourceOptions,
    FileSourceConfigModel,
    FileSourceOptions,
    RemoteSourceConfigModel,
    RemoteSourceOptions,
    SourcesConfigModel,
)
from .reload import ReloadTimer
from .remote import EntryKind, RemoteEntry, RemoteSourceLoader, RemoteStore

__all__ = [
    # Base
    "ConfigSource",
    "LoadState",
    "LoadStatus",
    "Snapshot",
    "ReloadTimer",
    # Remote
    "EntryKind",
    "RemoteEntry",
    "RemoteSourceLoader",
    "RemoteStore",
    # Local
    "DotEnvFileSource",
    "EnvironmentSource",
    "FileSource",
    "JsonFileSource",
    "MemorySource",
    "YamlFileSource",
    # Options and config file
    "EnvironmentSourceOptions",
    "FileSourceConfigModel",
    "FileSourceOptions",
    "RemoteSourceConfigModel",
    "RemoteSourceOptions",
    "SourcesConfigModel",
    "build_sources",
    "load_sources_config",
]
