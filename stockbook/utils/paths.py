"""Dotted-path helpers for nested record fields.

A path is either a dotted string (``"stock.quantity"``) or a tuple of
segments (``("stock", "quantity")``). Both address the same nested field.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

from ..exceptions import InvalidPathError

FieldPath = Union[str, tuple[str, ...]]

_MISSING = object()


def split_path(path: FieldPath) -> tuple[str, ...]:
    if isinstance(path, str):
        segments = tuple(path.split("."))
    elif isinstance(path, (tuple, list)):
        segments = tuple(path)
    else:
        raise InvalidPathError(f"Unsupported path type: {type(path).__name__}")

    if not segments or any(not isinstance(seg, str) or not seg for seg in segments):
        raise InvalidPathError(f"Invalid field path: {path!r}")
    return segments


def is_nested(path: FieldPath) -> bool:
    if isinstance(path, str):
        return "." in path
    return len(split_path(path)) > 1


def flat_key(path: FieldPath) -> str:
    return ".".join(split_path(path))


def get_path(record: Mapping[str, Any], path: FieldPath, default: Any = None) -> Any:
    value: Any = record
    for segment in split_path(path):
        if not isinstance(value, Mapping) or segment not in value:
            return default
        value = value[segment]
    return value


def has_path(record: Mapping[str, Any], path: FieldPath) -> bool:
    return get_path(record, path, _MISSING) is not _MISSING


def set_path(record: dict[str, Any], path: FieldPath, value: Any) -> None:
    """Set ``value`` at ``path``, creating missing intermediate objects.

    Raises InvalidPathError when an intermediate segment already holds a
    non-object value.
    """
    segments = split_path(path)
    target = record
    for segment in segments[:-1]:
        current = target.get(segment)
        if current is None:
            current = {}
            target[segment] = current
        elif not isinstance(current, dict):
            raise InvalidPathError(
                f"Cannot set {flat_key(segments)!r}: {segment!r} holds a {type(current).__name__}"
            )
        target = current
    target[segments[-1]] = value


def expand_patch(patch: Mapping[FieldPath, Any]) -> dict[str, Any]:
    """Turn ``{"stock.quantity": 5, "name": "x"}`` into a nested patch tree.

    Mapping values are copied into the tree, so the caller's patch is never
    modified and overlapping keys merge the same way in any order.
    """
    tree: dict[str, Any] = {}
    for key, value in patch.items():
        segments = split_path(key)
        target = tree
        for segment in segments[:-1]:
            if not isinstance(target.get(segment), dict):
                target[segment] = {}
            target = target[segment]
        leaf = segments[-1]
        if isinstance(value, Mapping):
            existing = target.get(leaf)
            target[leaf] = deep_merge(existing if isinstance(existing, Mapping) else {}, value)
        else:
            target[leaf] = value
    return tree


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, Mapping):
            base = result.get(key)
            result[key] = deep_merge(base if isinstance(base, Mapping) else {}, value)
        else:
            result[key] = value
    return result


def drop_flat_keys(record: dict[str, Any], keys) -> list[str]:
    """Remove literal dotted keys left behind by older flat writes."""
    removed = []
    for key in keys:
        if not is_nested(key):
            continue
        literal = flat_key(key)
        if literal in record:
            del record[literal]
            removed.append(literal)
    return removed


def heal_flat_keys(record: dict[str, Any]) -> int:
    """Fold every literal dotted key of ``record`` into its nested field.

    The nested value wins when both exist. Returns the number of flat keys removed.
    """
    count = 0
    for literal in [key for key in record if "." in key]:
        value = record.pop(literal)
        count += 1
        try:
            if not has_path(record, literal):
                set_path(record, literal, value)
        except InvalidPathError:
            continue
    return count
