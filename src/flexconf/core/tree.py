"""
Hierarchical view over a flat configuration map.

``ConfigTree`` presents a flat map (``{"database:host": "localhost"}``) as a
navigable tree. It never copies the map: a view only holds a reference to the
map, or to a callable returning the current snapshot of a source, plus the path
it is rooted at. Many views over different sub-paths share the same data.

Navigation comes in two flavours:

- **Checked**: ``get_child`` and ``get_indexed`` return ``None`` when there is
  nothing at the requested position.
- **Dynamic**: attribute access, item access and ``child`` always return a
  tree, possibly a missing node, so chains such as ``tree.server.tls.port``
  never raise. Use ``exists`` or ``convert`` to detect absence.

```python
>>> tree = ConfigTree({"Server:Port": "8080", "Server:Hosts:0": "a", "Server:Hosts:1": "b"})
>>> tree.server.port.convert(int)
8080
>>> tree.server.hosts.convert(list[str])
['a', 'b']
>>> tree.server.missing.deeper.exists
False
```

Child names are matched case-insensitively; ``get_value`` is an exact key
lookup. When a key is both a leaf and the prefix of other keys, scalar reads
return the leaf value while child navigation still sees the branch.

When the view is built over a callable (``ConfigTree.from_source``), every
operation reads the snapshot once and answers from it, so a reload running on
another thread is observed either entirely or not at all.
"""

import types
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin

from .conversion import to_type
from .flatten import KEY_SEPARATOR, join_key, unflatten

if TYPE_CHECKING:
    from flexconf.sources.base import ConfigSource

FlatData = Mapping[str, str | None]
DataProvider = FlatData | Callable[[], FlatData]


class ConfigTree:
    """A view rooted at one path of a flat configuration map."""

    __slots__ = ("_data", "_path")

    def __init__(self, data: DataProvider, path: str = ""):
        if data is None:
            raise TypeError("ConfigTree requires a mapping or a snapshot provider")
        self._data = data
        self._path = path or ""

    @classmethod
    def from_source(cls, source: "ConfigSource") -> "ConfigTree":
        """Create a live view over a source; reads always see its latest snapshot."""
        return cls(source.snapshot)

    def _snapshot(self) -> FlatData:
        if callable(self._data):
            return self._data()
        return self._data

    def _view(self, path: str) -> "ConfigTree":
        return ConfigTree(self._data, path)

    # Identity

    @property
    def path(self) -> str:
        """Full path of this node; empty for the root."""
        return self._path

    @property
    def key(self) -> str:
        """Last segment of the path."""
        return self._path.rsplit(KEY_SEPARATOR, 1)[-1]

    # Node state

    @property
    def exists(self) -> bool:
        """True if the node is a leaf, a branch, or both."""
        snapshot = self._snapshot()
        return _is_leaf(snapshot, self._path) or _is_branch(snapshot, self._path)

    @property
    def is_leaf(self) -> bool:
        return _is_leaf(self._snapshot(), self._path)

    @property
    def is_branch(self) -> bool:
        return _is_branch(self._snapshot(), self._path)

    @property
    def value(self) -> str | None:
        """Leaf value of this node, or None."""
        if not self._path:
            return None
        return self._snapshot().get(self._path)

    def as_scalar(self) -> str:
        """Leaf value of this node, or an empty string for branches and missing nodes."""
        return self.value or ""

    # Lookup

    def get_value(self, path: str | None) -> str | None:
        """Exact lookup of a key relative to this node.

        Args:
            path: Relative path such as ``"database:host"``

        Returns:
            The stored value, or None if the key is absent or path is empty
        """
        if not path:
            return None
        return self._snapshot().get(join_key(self._path, path))

    def get_child(self, name: str | None) -> "ConfigTree | None":
        """Resolve an immediate child by case-insensitive name.

        Args:
            name: Child segment name. Empty or None returns a view of this node.

        Returns:
            A view rooted at the matched child, or None if there is no such child
        """
        if not name:
            return self._view(self._path)
        matched = _match_child(self._snapshot(), self._path, name)
        if matched is None:
            return None
        return self._view(join_key(self._path, matched))

    def get_indexed(self, index: int) -> "ConfigTree | None":
        """Resolve the child whose segment is ``str(index)``."""
        return self.get_child(str(index))

    def child(self, name: str) -> "ConfigTree":
        """Like ``get_child`` but returns a missing node instead of None."""
        found = self.get_child(name)
        if found is not None:
            return found
        return self._view(join_key(self._path, name))

    def keys(self) -> list[str]:
        """Immediate child segment names, in first-seen order."""
        return _child_segments(self._snapshot(), self._path)

    def children(self) -> list["ConfigTree"]:
        return [self._view(join_key(self._path, name)) for name in self.keys()]

    # Conversion

    def convert(self, target: Any) -> Any:
        """Convert this node to ``target``.

        Scalars (``int``, ``bool``, ``timedelta``...) parse the leaf value.
        ``list[T]`` and ``tuple[T, ...]`` read children ``0, 1, ...`` up to the
        first gap. ``dict[K, V]`` reads the immediate children. Failures give
        the zero value of the requested type instead of raising.
        """
        return _convert(self._snapshot(), self._path, target)

    def to_dict(self) -> dict[str, Any] | list[Any]:
        """Rebuild the nested document below this node."""
        snapshot = self._snapshot()
        if not self._path:
            return unflatten(snapshot)
        prefix = self._path + KEY_SEPARATOR
        return unflatten(
            {key[len(prefix) :]: value for key, value in snapshot.items() if key.startswith(prefix)}
        )

    # Dynamic access

    def __getattr__(self, name: str) -> "ConfigTree":
        if name.startswith("_"):
            raise AttributeError(name)
        return self.child(name)

    def __getitem__(self, key: str | int) -> "ConfigTree":
        if isinstance(key, int):
            return self.child(str(key))
        node = self
        for segment in key.split(KEY_SEPARATOR):
            node = node.child(segment)
        return node

    def __contains__(self, name: object) -> bool:
        return isinstance(name, (str, int)) and self.get_child(str(name)) is not None

    def __iter__(self) -> Iterator["ConfigTree"]:
        return iter(self.children())

    def __bool__(self) -> bool:
        return self.exists

    def __str__(self) -> str:
        return self.as_scalar()

    def __repr__(self) -> str:
        return f"ConfigTree(path={self._path!r})"


def _is_leaf(snapshot: FlatData, path: str) -> bool:
    return bool(path) and path in snapshot


def _is_branch(snapshot: FlatData, path: str) -> bool:
    if not path:
        return len(snapshot) > 0
    prefix = path + KEY_SEPARATOR
    return any(key.startswith(prefix) for key in snapshot)


def _child_segments(snapshot: FlatData, path: str) -> list[str]:
    prefix = path + KEY_SEPARATOR if path else ""
    seen: dict[str, str] = {}
    for key in snapshot:
        if prefix and not key.startswith(prefix):
            continue
        segment = key[len(prefix) :].split(KEY_SEPARATOR, 1)[0]
        seen.setdefault(segment.casefold(), segment)
    return list(seen.values())


def _match_child(snapshot: FlatData, path: str, name: str) -> str | None:
    wanted = name.casefold()
    for segment in _child_segments(snapshot, path):
        if segment.casefold() == wanted:
            return segment
    return None


def _convert(snapshot: FlatData, path: str, target: Any) -> Any:
    origin = get_origin(target)
    args = get_args(target)

    if target in (list, tuple) or origin in (list, tuple):
        item_type = args[0] if args else str
        items = []
        index = 0
        while True:
            item_path = join_key(path, str(index))
            if not (_is_leaf(snapshot, item_path) or _is_branch(snapshot, item_path)):
                break
            items.append(_convert(snapshot, item_path, item_type))
            index += 1
        return tuple(items) if (origin or target) is tuple else items

    if target is dict or origin is dict:
        key_type, value_type = args if len(args) == 2 else (str, str)
        return {
            to_type(segment, key_type): _convert(snapshot, join_key(path, segment), value_type)
            for segment in _child_segments(snapshot, path)
        }

    if origin is Union or origin is types.UnionType:
        if not (_is_leaf(snapshot, path) or _is_branch(snapshot, path)):
            return None
        inner = [arg for arg in args if arg is not type(None)]
        return _convert(snapshot, path, inner[0]) if inner else None

    value = snapshot.get(path) if path else None
    return to_type(value, target)
