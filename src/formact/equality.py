"""Deep equality for record graphs, ignoring transient `$`-prefixed keys."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any


def is_transient_key(key: Any) -> bool:
    return isinstance(key, str) and key.startswith("$")


def _public_items(obj: dict) -> dict:
    return {
        key: value
        for key, value in obj.items()
        if not is_transient_key(key) and not callable(value)
    }


def deep_equals(left: Any, right: Any) -> bool:
    """Compare two record values structurally.

    Keys starting with `$` and callables are not part of a record's identity
    and are skipped. Temporal values compare by value, and booleans never
    equal numbers.
    """
    if left is right:
        return True
    if isinstance(left, (datetime, date)) or isinstance(right, (datetime, date)):
        return type(left) is type(right) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        lhs = _public_items(left)
        rhs = _public_items(right)
        if lhs.keys() != rhs.keys():
            return False
        return all(deep_equals(lhs[key], rhs[key]) for key in lhs)
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(deep_equals(a, b) for a, b in zip(left, right))
    if isinstance(left, (dict, list, tuple)) or isinstance(right, (dict, list, tuple)):
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right
