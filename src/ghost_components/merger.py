"""Config merging utilities.

Key principles:
- Dict values are recursively deep-merged
- Scalars and lists in the override replace the base value wholesale
- Inputs are never mutated
"""

from collections.abc import Iterator
from typing import Any


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursive deep merge of two dictionaries.

    Override values win at all nesting levels.
    If both sides have dict values for the same key, merge recursively.

    Args:
        base: Lower-precedence dictionary
        override: Higher-precedence dictionary

    Returns:
        Merged dictionary

    Example:
        >>> merge_dicts({"a": 1, "b": {"x": 1, "y": 2}}, {"b": {"x": 10, "z": 3}, "c": [4]})
        {'a': 1, 'b': {'x': 10, 'y': 2, 'z': 3}, 'c': [4]}
    """
    merged = base.copy()

    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            # Scalar, list, or type mismatch - override wins
            merged[key] = value

    return merged


def leaf_paths(data: dict[str, Any], prefix: str = "") -> Iterator[str]:
    """
    Yield dotted key paths of every leaf value.

    Empty dicts count as leaves.

    Example:
        >>> list(leaf_paths({"a": 1, "b": {"c": 2, "d": {}}}, "opencode"))
        ['opencode.a', 'opencode.b.c', 'opencode.b.d']
    """
    for key, value in data.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            yield from leaf_paths(value, path)
        else:
            yield path
