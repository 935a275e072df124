"""
Conversion between nested locale trees and flat dot-path maps.

A locale tree is a nested mapping whose leaves are scalars. Lists are opaque
leaves and are never descended into. Empty mappings are kept as leaves too, so
``unflatten(flatten(tree))`` reproduces the tree exactly.
"""
from typing import Any, Dict, Iterable

from locale_sync.exceptions import UnsupportedKeyError

PATH_SEPARATOR = '.'


def flatten(tree: Dict[str, Any], prefix: str = '') -> Dict[str, Any]:
    """
    Flatten a nested locale tree into a dot-path map.

    Example:
        {'a': {'b': 'x'}, 'c': 'y'} -> {'a.b': 'x', 'c': 'y'}

    Args:
        tree: The nested mapping to flatten.
        prefix: The dot-path of ``tree`` inside the overall document.

    Returns:
        A dictionary mapping every leaf's dot-path to its value.

    Raises:
        UnsupportedKeyError: If a key contains a literal '.'.
    """
    result: Dict[str, Any] = {}
    for key, value in tree.items():
        key = str(key)
        if PATH_SEPARATOR in key:
            raise UnsupportedKeyError(key, prefix)
        path = f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key
        if isinstance(value, dict) and value:
            result.update(flatten(value, path))
        else:
            result[path] = value
    return result


def unflatten(flat_map: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rebuild a nested locale tree from a dot-path map.

    Intermediate mappings are created as needed. If two paths collide (a leaf
    and a branch at the same path) the later entry wins.
    """
    result: Dict[str, Any] = {}
    for path, value in flat_map.items():
        segments = path.split(PATH_SEPARATOR)
        current = result
        for segment in segments[:-1]:
            node = current.get(segment)
            if not isinstance(node, dict):
                node = {}
                current[segment] = node
            current = node
        current[segments[-1]] = value
    return result


def extract_subset(tree: Dict[str, Any], paths: Iterable[str]) -> Dict[str, Any]:
    """Return a tree holding only the given leaf paths. Unknown paths are skipped."""
    flat = flatten(tree)
    subset = {path: flat[path] for path in paths if path in flat}
    return unflatten(subset)


def remove_paths(tree: Dict[str, Any], paths: Iterable[str]) -> Dict[str, Any]:
    """Return a copy of ``tree`` without the given leaf paths."""
    flat = flatten(tree)
    for path in paths:
        flat.pop(path, None)
    return unflatten(flat)


def deep_merge(existing: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge ``incoming`` into ``existing`` without mutating either.

    Where both sides hold a mapping for the same key the merge recurses;
    otherwise the incoming value wins. An empty incoming mapping is a leaf and
    replaces whatever ``existing`` holds. Keys only present in ``existing``
    are kept untouched.
    """
    result = dict(existing)
    for key, value in incoming.items():
        current = result.get(key)
        if value and isinstance(value, dict) and isinstance(current, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result
