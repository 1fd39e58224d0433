"""Key codec: maps nested values onto flat field-path -> string entries.

A logical document is a tree of JSON-compatible values. The cache stores it
as a Redis hash, one field per leaf:

    flatten("profile", {"name": "Ada", "langs": ["en"], "age": 36})
    -> {"profile.name": "Ada", "profile.langs": '["en"]', "profile.age": "36"}

Dicts are descended into, sequences are not: an array is always a single
entry. ``None`` leaves become the ``DELETE`` marker so the writer removes the
field instead of storing it.

Reading reverses the transform with ``coerce`` (string -> primitive) and
``unflatten`` (dotted paths -> nested dicts). ``coerce`` is deliberately
lossy: numeric strings longer than 14 characters stay strings, so values
cached by earlier writers decode the same way.
"""

from __future__ import annotations

import math
import re
from typing import Any, Final, Union

import orjson

JsonValue = Union[None, bool, int, float, str, list[Any], tuple[Any, ...], dict[str, Any]]

PATH_SEPARATOR: Final = "."

# Longest string coerce() will still try to read as a number
MAX_NUMERIC_LENGTH: Final = 14


class _DeleteMarker:
    """Sentinel for a flattened leaf that must be removed from the cache."""

    _instance: _DeleteMarker | None = None

    def __new__(cls) -> _DeleteMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE"


DELETE: Final = _DeleteMarker()

FlatEntries = dict[str, Union[str, _DeleteMarker]]

_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_RADIX_RE = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
_INFINITY_RE = re.compile(r"[+-]?Infinity")


def join_path(*segments: str) -> str:
    """Join path segments with dots, skipping empty segments."""
    return PATH_SEPARATOR.join(segment for segment in segments if segment)


def encode_leaf(value: JsonValue) -> str:
    """Encode a single non-null leaf to its cached string form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, dict)):
        return orjson.dumps(value).decode()
    raise TypeError(f"Unsupported value type for cache encoding: {type(value).__name__}")


def flatten(root_key: str, value: JsonValue) -> FlatEntries:
    """Flatten ``value`` wrapped under ``root_key`` into cache entries."""
    entries: FlatEntries = {}
    _walk(root_key, value, entries)
    return entries


def _walk(path: str, value: JsonValue, entries: FlatEntries) -> None:
    if value is None:
        entries[path] = DELETE
        return
    if isinstance(value, dict) and value:
        for child_key, child in value.items():
            if not isinstance(child_key, str):
                raise TypeError(f"Mapping keys must be strings, got {type(child_key).__name__}")
            _walk(join_path(path, child_key), child, entries)
        return
    entries[path] = encode_leaf(value)


def unflatten(entries: dict[str, Any], key: str | None = None) -> Any:
    """Rebuild a nested value from dotted field paths.

    When ``entries`` holds exactly one entry stored under ``key`` itself, its
    value is returned unwrapped so scalar reads yield scalars. Otherwise, if
    ``key`` is given, the subtree found under ``key`` is returned.
    """
    if key is not None and len(entries) == 1 and key in entries:
        return entries[key]

    result: dict[str, Any] = {}
    for path, value in entries.items():
        segments = path.split(PATH_SEPARATOR)
        node = result
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value
    if key is None:
        return result
    return subtree(result, key)


def subtree(tree: Any, key: str) -> Any:
    """Descend into a nested value along the segments of ``key``."""
    node = tree
    for segment in key.split(PATH_SEPARATOR):
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]
    return node


def _parse_number(raw: str) -> int | float | None:
    text = raw.strip()
    if not text:
        return None
    if _DECIMAL_RE.fullmatch(text):
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)
    if _RADIX_RE.fullmatch(text):
        return int(text, 0)
    if _INFINITY_RE.fullmatch(text):
        return -math.inf if text.startswith("-") else math.inf
    return None


def coerce(raw: str) -> Any:
    """Best-effort reverse of ``encode_leaf`` for a cached string."""
    if len(raw) <= MAX_NUMERIC_LENGTH:
        number = _parse_number(raw)
        if number is not None:
            return number
    if raw == "true":
        return True
    if raw == "false":
        return False
    if (raw.startswith("[") and raw.endswith("]")) or (
        raw.startswith("{") and raw.endswith("}")
    ):
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            pass
    return raw
