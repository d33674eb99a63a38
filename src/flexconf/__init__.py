"""flexconf - layered configuration access for Python applications.

Load configuration from remote stores, files and the environment into
immutable flat snapshots, and read it through a navigable tree:

```python
from datetime import timedelta

from flexconf import RemoteSourceLoader, RemoteSourceOptions
from flexconf.sources.stores import ParameterStore

store = ParameterStore("/myapp/prod", region_name="eu-west-1")
options = RemoteSourceOptions(
    optional=False,
    json_processing=True,
    reload_interval=timedelta(minutes=5),
)

with RemoteSourceLoader(store, options) as source:
    source.load()
    config = source.tree()
    pool_size = config.database.pool.size.convert(int)
```
"""

from flexconf.core import (
    ConfigError,
    ConfigTree,
    EntryNotFound,
    MalformedValue,
    SourceError,
    SourceUnavailable,
    VersionStageNotFound,
    flatten_json,
    flatten_value,
    unflatten,
)
from flexconf.core.version import PACKAGE_VERSION as __version__
from flexconf.sources import (
    ConfigSource,
    DotEnvFileSource,
    EntryKind,
    EnvironmentSource,
    EnvironmentSourceOptions,
    FileSourceOptions,
    JsonFileSource,
    LoadStatus,
    MemorySource,
    RemoteEntry,
    RemoteSourceLoader,
    RemoteSourceOptions,
    RemoteStore,
    YamlFileSource,
    build_sources,
    load_sources_config,
)

__all__ = [
    "__version__",
    "ConfigError",
    "ConfigSource",
    "ConfigTree",
    "DotEnvFileSource",
    "EntryKind",
    "EntryNotFound",
    "EnvironmentSource",
    "EnvironmentSourceOptions",
    "FileSourceOptions",
    "JsonFileSource",
    "LoadStatus",
    "MalformedValue",
    "MemorySource",
    "RemoteEntry",
    "RemoteSourceLoader",
    "RemoteSourceOptions",
    "RemoteStore",
    "SourceError",
    "SourceUnavailable",
    "VersionStageNotFound",
    "YamlFileSource",
    "build_sources",
    "flatten_json",
    "flatten_value",
    "unflatten",
]
