"""Resolve a logical field name to the widgets currently bound to it."""

from __future__ import annotations

from typing import Any, List

from widgets import Widget


def locate(name: str, form_scope: Any, form_path: str | None = None) -> List[Widget]:
    """Return the widgets bound to `name`, searching the form toolbar and body.

    Lookup order, first non-empty match wins: the nested path
    `form_path + "." + name`, then the exact path, then the plain name.
    """
    widgets = getattr(form_scope, "widgets", None)
    if widgets is None or not name:
        return []

    if form_path:
        items = widgets.by_path(f"{form_path}.{name}")
        if items:
            return items

    items = widgets.by_path(name)
    if items:
        return items

    return widgets.by_name(name)
