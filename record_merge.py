"""Merge server-supplied partial records into the live form record."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Dict, List

from formact.equality import deep_equals


logger = logging.getLogger("formact.merge")

Record = Dict[str, Any]

FETCHED = "$fetched"
UPDATED_VALUES = "$updatedValues"


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def compact(value: Any) -> Any:
    """Drop `version` from a persisted reference so it cannot raise a stale-version conflict."""
    if not value or not isinstance(value, dict):
        return value
    if "version" not in value or not value.get("id"):
        return value
    res = dict(value)
    res.pop("version")
    return res


def _merge_collection(items: List[Any], dest: Any) -> List[Any]:
    existing = dest if isinstance(dest, list) else []
    merged = []
    for item in items:
        if not isinstance(item, dict):
            merged.append(item)
            continue
        item = dict(item)
        item_id = item.get("id")
        found = None
        if item_id is not None:
            found = next(
                (v for v in existing if isinstance(v, dict) and v.get("id") == item_id),
                None,
            )
        if "version" in item and item_id:
            item[FETCHED] = True
        merged.append({**found, **item} if found is not None else item)
    return merged


def update_values(
    source: Record,
    target: Record,
    item_scope: Any = None,
    form_scope: Any = None,
    path: str = "",
) -> None:
    """Merge `source` into `target` in place.

    Nested objects that keep their `id` are merged field by field when the
    target copy is versioned. Unversioned ones may be mid-edit, so the update
    is parked on `$updatedValues` and queued on the form's nested values
    outbox for the owning widget. Collections are matched item by item on `id`
    and take the order and length of `source`.
    """
    if deep_equals(source, target):
        return

    for key, value in source.items():
        key_path = _join(path, key)

        if isinstance(value, (datetime, date, time)):
            target[key] = value
            continue

        if isinstance(value, list):
            target[key] = _merge_collection(value, target.get(key))
            continue

        if isinstance(value, dict):
            dest = target.get(key)
            if not isinstance(dest, dict):
                target[key] = compact(value)
                continue
            if dest.get("id") != value.get("id"):
                target[key] = compact(value)
                continue
            if dest.get("version") is not None:
                dest = dict(dest)
                update_values(value, dest, item_scope, form_scope, key_path)
            elif not deep_equals(dest.get(UPDATED_VALUES), value):
                dest[UPDATED_VALUES] = value
                outbox = getattr(form_scope, "nested_values", None)
                if outbox is not None:
                    outbox.enqueue(key_path, value)
                logger.debug("nested_values_deferred path=%s id=%s", key_path, value.get("id"))
            target[key] = dest
            continue

        target[key] = value
