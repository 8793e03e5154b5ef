"""Form session state: the live record, its widgets and the hooks the action engine drives."""

from __future__ import annotations

import copy
from typing import Any, Awaitable, Callable, Dict

from event_bus import EventBus, ScopeEvent
from formact.equality import deep_equals
from outbox import NestedValuesOutbox
from widgets import Widget, WidgetRegistry


Record = Dict[str, Any]


class FormScope:
    """The owner of one open form.

    `record` is mutated only by the action engine and by widget callbacks.
    Optional hooks (`get_context`, `on_save`, `do_read`, `show_error_notice`,
    `on_change_notify`, `on_ok`) stay None unless the embedding view supplies
    them.
    """

    def __init__(
        self,
        model: str | None = None,
        record: Record | None = None,
        *,
        view_params: dict | None = None,
        form_path: str | None = None,
        data_source: Any = None,
        parent: "FormScope | None" = None,
    ) -> None:
        self.model = model
        self.record: Record = record if record is not None else {}
        self.original: Record = copy.deepcopy(self.record)
        self.view_params: dict = view_params if view_params is not None else {}
        self.form_path = form_path
        self.data_source = data_source
        self.parent = parent

        self.widgets = WidgetRegistry()
        self.bus = EventBus(parent.bus if parent is not None else None)
        self.nested_values = NestedValuesOutbox()
        self.events: Dict[str, Callable[..., Awaitable[None]]] = {}

        self.get_context: Callable[[], Record] | None = None
        self.on_save: Callable[..., Awaitable[Any]] | None = None
        self.do_read: Callable[[Any], Awaitable[Record]] | None = None
        self.show_error_notice: Callable[[], None] | None = None
        self.on_change_notify: Callable[["FormScope", Record], None] | None = None
        self.on_ok: Callable[[], None] | None = None

    def add_widget(self, widget: Widget) -> Widget:
        widget.form = self
        self.widgets.add(widget)
        self.bus.attach(widget.bus)
        return widget

    def remove_widget(self, widget: Widget) -> None:
        self.widgets.remove(widget)
        self.bus.detach(widget.bus)
        widget.form = None

    def broadcast(self, name: str, payload: Any = None) -> ScopeEvent:
        return self.bus.broadcast(name, payload)

    def is_valid(self) -> bool:
        return all(
            w.controller.valid for w in self.widgets if w.controller is not None
        )

    def is_dirty(self) -> bool:
        return not deep_equals(self.record, self.original)

    def edit_record(self, record: Record | None) -> None:
        self.record = copy.deepcopy(record) if record else {}
        self.original = copy.deepcopy(self.record)
        self.nested_values.clear()

    async def reload(self, force: bool = False) -> Record | None:
        record_id = self.record.get("id")
        if record_id is None:
            return None
        if not force and not self.is_dirty():
            return self.record
        if self.do_read is not None:
            record = await self.do_read(record_id)
        elif self.data_source is not None:
            record = await self.data_source.read(record_id)
        else:
            return None
        self.edit_record(record)
        return self.record
