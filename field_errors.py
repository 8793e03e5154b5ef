"""Inline validation errors attached to widgets from server responses."""

from __future__ import annotations

from typing import Any

from event_bus import EDIT
from widgets import Widget


INVALID = "invalid"


def _discard(items: list, hook: Any) -> None:
    if hook in items:
        items.remove(hook)


def attach_error(scope: Any, widget: Widget | None, message: str) -> bool:
    """Mark `widget` invalid and show `message` until the next edit or reset.

    A one-shot reset hook is pushed into the widget's change listeners and
    formatters, so the first value that flows through either pipeline clears
    the error. Returns False when nothing was attached.
    """
    if widget is None:
        return False
    ctrl = widget.controller
    if ctrl is None or ctrl.do_reset is not None:
        return False

    widget.errors.append(message)
    clear = scope.bus.subscribe(EDIT, lambda _event: ctrl.do_reset and ctrl.do_reset())

    def do_reset(value: Any = None) -> Any:
        _discard(ctrl.view_change_listeners, do_reset)
        _discard(ctrl.formatters, do_reset)
        ctrl.set_validity(INVALID, True)
        ctrl.do_reset = None
        if message in widget.errors:
            widget.errors.remove(message)
        clear()
        return value

    ctrl.do_reset = do_reset
    if not widget.readonly:
        ctrl.set_validity(INVALID, False)
    ctrl.view_change_listeners.append(do_reset)
    ctrl.formatters.append(do_reset)
    return True


def reset_error(widget: Widget) -> bool:
    ctrl = widget.controller
    if ctrl is None or ctrl.do_reset is None:
        return False
    ctrl.do_reset()
    return True
