"""flexconf core - flattening, tree access and errors.

## Key Modules

### Flattening (`flexconf.core.flatten`)
- `flatten_json`: Flatten a JSON document into ``a:b:0`` style keys; text that
  is not a JSON object or array is stored verbatim
- `flatten_value`: Flatten an already decoded document (YAML, dicts)
- `unflatten`: Rebuild the nested document from a flat map

### Tree access (`flexconf.core.tree`)
- `ConfigTree`: Navigable, case-insensitive view over a flat map or a live source

### Conversion (`flexconf.core.conversion`)
- `to_type`: Best-effort string conversion with zero-value fallback

### Errors (`flexconf.core.errors`)
- `SourceError` and its subclasses, each carrying the originating source

## Quick Example

```python
from flexconf.core import ConfigTree, flatten_json

flat = flatten_json('{"db": {"hosts": ["a", "b"], "port": 5432}}')
# {"db:hosts:0": "a", "db:hosts:1": "b", "db:port": "5432"}

tree = ConfigTree(flat)
tree.db.port.convert(int)  # 5432
```
"""

from .conversion import parse_timedelta, to_type, zero_value
from .errors import (
    ConfigError,
    EntryNotFound,
    MalformedValue,
    SourceError,
    SourceUnavailable,
    VersionStageNotFound,
)
from .flatten import (
    KEY_SEPARATOR,
    flatten_json,
    flatten_value,
    is_flattenable_json,
    join_key,
    unflatten,
)
from .tree import ConfigTree
from .version import PACKAGE_NAME, PACKAGE_VERSION, get_package_info

__all__ = [
    # Flattening
    "KEY_SEPARATOR",
    "flatten_json",
    "flatten_value",
    "is_flattenable_json",
    "join_key",
    "unflatten",
    # Tree
    "ConfigTree",
    # Conversion
    "parse_timedelta",
    "to_type",
    "zero_value",
    # Errors
    "ConfigError",
    "EntryNotFound",
    "MalformedValue",
    "SourceError",
    "SourceUnavailable",
    "VersionStageNotFound",
    # Version
    "PACKAGE_NAME",
    "PACKAGE_VERSION",
    "get_package_info",
]
