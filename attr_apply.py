"""Apply server-issued attribute changes to widget handles."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Dict

from event_bus import ATTRS_REFRESH
from widgets import Widget


logger = logging.getLogger("formact.attrs")

FLAG_ATTRS = ("required", "readonly", "hidden", "collapse")
RELATIONAL_KINDS = ("one2many", "many2many")


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def is_value_attr(attr: str) -> bool:
    return attr == "value" or attr.startswith("value:")


def _apply_column(widget: Widget, item_attrs: Dict[str, Any]) -> None:
    grid = widget.parent
    if grid is None:
        return
    column_id = widget.column_id or widget.name
    for attr, value in item_attrs.items():
        if attr == "hidden" and grid.show_column is not None:
            grid.show_column(column_id, not value)
        if attr == "title" and grid.set_column_title is not None:
            # deferred so a batch of column renames triggers one relayout
            asyncio.get_running_loop().call_soon(grid.set_column_title, column_id, value)


def _apply_tab(widget: Widget, item_attrs: Dict[str, Any]) -> None:
    for attr, value in item_attrs.items():
        if attr == "hidden":
            widget.attr("hidden", value)
        if attr == "title":
            widget.title = value


async def apply_attrs(widget: Widget, item_attrs: Dict[str, Any], index: int = 0) -> None:
    """Apply `item_attrs` to one located widget.

    `index` is the position of `widget` among the matches for the same name.
    Only the first match has its value driven from here.
    """
    if widget.kind == "column":
        _apply_column(widget, item_attrs)
        return

    if widget.kind in RELATIONAL_KINDS:
        if "title" in item_attrs:
            widget.title = item_attrs["title"]
        return

    if widget.kind == "tab":
        _apply_tab(widget, item_attrs)
        return

    for attr, value in item_attrs.items():
        if not attr:
            continue
        if index > 0 and is_value_attr(attr):
            continue

        if attr in FLAG_ATTRS:
            widget.attr(attr, value)
        elif attr == "title":
            if widget.label is not None:
                widget.label.html(value)
            elif widget.kind == "label":
                widget.text = "" if value is None else str(value)
            widget.attr("title", value)
        elif attr == "color":
            pass
        elif attr == "domain":
            if widget.set_domain is not None:
                await _maybe_await(widget.set_domain(value))
        elif attr == "refresh":
            widget.bus.broadcast(ATTRS_REFRESH)
        elif attr in ("url", "url:set"):
            if widget.kind == "portlet":
                widget.frame_src = value
        elif attr in ("value", "value:set"):
            if widget.set_value is not None:
                await _maybe_await(widget.set_value(value))
        elif attr == "value:add":
            if widget.fetch_data is not None and widget.select is not None:
                records = await _maybe_await(widget.fetch_data(value))
                await _maybe_await(widget.select(records))
        elif attr == "value:del":
            if widget.remove_items is not None:
                await _maybe_await(widget.remove_items(value))
        else:
            logger.debug("attr_ignored attr=%s widget=%s", attr, widget.name or widget.path)
