"""
Flattening of nested documents into path-keyed maps.

A flat map is an ordinary ``dict`` whose keys are colon-separated paths and
whose values are strings or ``None``:

```python
>>> flatten_json('{"database": {"host": "localhost", "port": 5432}, "flags": ["a", "b"]}', "cfg")
{'cfg:database:host': 'localhost', 'cfg:database:port': '5432',
 'cfg:flags:0': 'a', 'cfg:flags:1': 'b'}
```

Rules:

- Only a document whose root is an object or an array counts as JSON. Scalar
  documents such as ``123``, ``true`` or ``null`` are stored verbatim, so plain
  values that happen to parse as JSON are never reinterpreted.
- Malformed JSON never raises; it is stored verbatim under the prefix.
- Numbers keep their exact source text (``1.50`` stays ``"1.50"``).
- Booleans become ``"true"``/``"false"``, null becomes ``None``.
- Empty objects and arrays produce no entries.
"""

import json
import logging
from collections.abc import Mapping, MutableMapping
from datetime import date, datetime, time
from typing import Any

logger = logging.getLogger(__name__)

KEY_SEPARATOR = ":"

FlatMap = dict[str, str | None]


class _JsonNumber(str):
    """Raw source text of a JSON number."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _parse(text: str) -> Any:
    return json.loads(
        text,
        parse_int=_JsonNumber,
        parse_float=_JsonNumber,
        parse_constant=_reject_constant,
    )


def join_key(prefix: str, segment: str) -> str:
    """Append one path segment to a prefix."""
    if not prefix:
        return segment
    return f"{prefix}{KEY_SEPARATOR}{segment}"


def is_flattenable_json(text: str | None) -> bool:
    """Check whether text is a JSON document with an object or array root."""
    if not text or not text.strip():
        return False
    try:
        document = _parse(text)
    except (ValueError, RecursionError):
        return False
    return isinstance(document, (dict, list))


def flatten_json(
    text: str,
    prefix: str = "",
    output: MutableMapping[str, str | None] | None = None,
) -> MutableMapping[str, str | None]:
    """Flatten a JSON document (or opaque text) into ``output``.

    Args:
        text: JSON text, or any other string to be stored verbatim
        prefix: Key prefix for every produced entry; empty for the root
        output: Map to write into. A new dict is created when omitted.

    Returns:
        The map that was written to
    """
    if output is None:
        output = {}

    document: Any = None
    parsed = False
    if text and text.strip():
        try:
            document = _parse(text)
            parsed = isinstance(document, (dict, list))
        except (ValueError, RecursionError) as e:
            logger.debug(f"Value under '{prefix}' is not JSON, storing verbatim: {e}")

    if not parsed:
        if prefix:
            output[prefix] = text
        return output

    _flatten(document, prefix, output)
    return output


def flatten_value(
    value: Any,
    prefix: str = "",
    output: MutableMapping[str, str | None] | None = None,
) -> MutableMapping[str, str | None]:
    """Flatten an already decoded document (YAML or JSON file contents).

    Args:
        value: Mapping, sequence or scalar
        prefix: Key prefix for every produced entry; empty for the root
        output: Map to write into. A new dict is created when omitted.

    Returns:
        The map that was written to
    """
    if output is None:
        output = {}
    _flatten(value, prefix, output)
    return output


def _flatten(value: Any, prefix: str, output: MutableMapping[str, str | None]) -> None:
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(item, join_key(prefix, _stringify(key)), output)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _flatten(item, join_key(prefix, str(index)), output)
    elif value is None:
        if prefix:
            output[prefix] = None
    elif prefix:
        output[prefix] = _stringify(value)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def unflatten(flat: Mapping[str, str | None]) -> dict[str, Any] | list[Any]:
    """Rebuild a nested document from a flat map.

    A branch whose child segments are exactly ``0..n-1`` becomes a list,
    every other branch becomes a dict. When a key is both a leaf and a branch
    the branch is kept.
    """
    root: dict[str, Any] = {}
    for key, value in flat.items():
        segments = key.split(KEY_SEPARATOR)
        node = root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        last = segments[-1]
        if not isinstance(node.get(last), dict):
            node[last] = value
    return _listify(root)


def _listify(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    converted = {key: _listify(value) for key, value in node.items()}
    if converted and set(converted) == {str(i) for i in range(len(converted))}:
        return [converted[str(i)] for i in range(len(converted))]
    return converted
