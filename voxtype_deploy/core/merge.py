"""
Untyped document merging and canonical ordering.

deep_merge is the second stage of the layered merge: a free-form document is
laid over a structured one with override-wins semantics. canonicalize gives
every mapping a sorted key order so serialisation never depends on insertion
order.
"""

from typing import Any, Dict, Mapping


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge override into base. Override wins for conflicts.

    Nested mappings present on both sides merge recursively. Everything else
    (scalars, lists, a mapping replacing a scalar or the reverse) is replaced
    by the override value. Paths only present in the override are copied
    verbatim. Neither argument is modified.

    Args:
        base: Base document
        override: Document laid on top

    Returns:
        New merged document
    """
    merged: Dict[str, Any] = {key: _copy(value) for key, value in base.items()}
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = _copy(value)
    return merged


def canonicalize(value: Any) -> Any:
    """Return a copy of value with every mapping's keys in sorted order."""
    if isinstance(value, Mapping):
        return {str(key): canonicalize(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    return value


def _copy(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _copy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy(item) for item in value]
    return value
