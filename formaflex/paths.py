"""Dotted-path access into nested form values.

Field keys are opaque strings. A key that exists verbatim at the top level
of the values mapping always addresses that entry; otherwise a dotted key
such as "personalInfo.email" addresses into nested records.

Writes are copy-on-write: set_path returns a new mapping and never mutates
the one it was given, so snapshots handed out earlier stay consistent.
"""

from typing import Any, Dict, Mapping

_MISSING = object()


def _lookup(values: Mapping[str, Any], path: str) -> Any:
    if path in values:
        return values[path]
    if "." in path:
        head, rest = path.split(".", 1)
        child = values.get(head)
        if isinstance(child, Mapping):
            return _lookup(child, rest)
    return _MISSING


def get_path(values: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Read the value at a field key.

    Examples:
        >>> get_path({"personalInfo": {"name": "Ada"}}, "personalInfo.name")
        'Ada'
        >>> get_path({"a.b": 1, "a": {"b": 2}}, "a.b")
        1
        >>> get_path({}, "missing") is None
        True
    """
    found = _lookup(values, path)
    return default if found is _MISSING else found


def has_path(values: Mapping[str, Any], path: str) -> bool:
    return _lookup(values, path) is not _MISSING


def set_path(values: Mapping[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """Return a copy of values with the field key set to value.

    Intermediate records are copied along the path and created when absent
    (or when the existing entry is not a record).

    Examples:
        >>> original = {"personalInfo": {"name": "", "email": ""}}
        >>> updated = set_path(original, "personalInfo.name", "Ada")
        >>> updated["personalInfo"]
        {'name': 'Ada', 'email': ''}
        >>> original["personalInfo"]["name"]
        ''
    """
    updated = dict(values)
    if path in values or "." not in path:
        updated[path] = value
        return updated

    head, rest = path.split(".", 1)
    child = values.get(head)
    if not isinstance(child, Mapping):
        child = {}
    updated[head] = set_path(child, rest, value)
    return updated


__all__ = [
    "get_path",
    "has_path",
    "set_path",
]
