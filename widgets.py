"""Widget handles and the per-form widget registry."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List

from event_bus import EventBus


KINDS = {
    "field",
    "button",
    "label",
    "column",
    "one2many",
    "many2many",
    "tab",
    "portlet",
}

REGIONS = ("toolbar", "body")

_MISSING = object()


class Label:
    def __init__(self, text: str = "") -> None:
        self.text = text

    def html(self, value: Any) -> None:
        self.text = "" if value is None else str(value)


class ModelController:
    """Validity state plus the change-listener and formatter pipelines of a bound widget."""

    def __init__(self) -> None:
        self.validity: Dict[str, bool] = {}
        self.view_change_listeners: List[Callable[..., Any]] = []
        self.formatters: List[Callable[[Any], Any]] = []
        self.do_reset: Callable[..., Any] | None = None

    def set_validity(self, key: str, valid: bool) -> None:
        self.validity[key] = valid

    @property
    def valid(self) -> bool:
        return all(self.validity.values())

    def set_view_value(self, value: Any) -> None:
        for listener in list(self.view_change_listeners):
            listener(value)

    def format(self, value: Any) -> Any:
        for formatter in list(reversed(self.formatters)):
            value = formatter(value)
        return value


class Widget:
    """Capability-exposing handle of a rendered field, column, tab or toolbar item.

    Optional capabilities (`set_value`, `set_domain`, `fetch_data`, `select`,
    `remove_items`, `show_column`, `set_column_title`) are plain callables and
    stay None when the widget does not support them.
    """

    def __init__(
        self,
        name: str | None = None,
        *,
        path: str | None = None,
        kind: str = "field",
        region: str = "body",
        label: Label | None = None,
        controller: ModelController | None = None,
        parent: "Widget | None" = None,
        column_id: str | None = None,
        set_value: Callable[[Any], Any] | None = None,
        set_domain: Callable[[Any], Any] | None = None,
        fetch_data: Callable[[Any], Any] | None = None,
        select: Callable[[Any], Any] | None = None,
        remove_items: Callable[[Any], Any] | None = None,
        show_column: Callable[[str, bool], Any] | None = None,
        set_column_title: Callable[[str, Any], Any] | None = None,
    ) -> None:
        if kind not in KINDS:
            raise ValueError(f"Unknown widget kind: {kind}")
        if region not in REGIONS:
            raise ValueError(f"Unknown widget region: {region}")
        self.name = name
        self.path = path
        self.kind = kind
        self.region = region
        self.label = label
        self.controller = controller
        self.parent = parent
        self.column_id = column_id
        self.set_value = set_value
        self.set_domain = set_domain
        self.fetch_data = fetch_data
        self.select = select
        self.remove_items = remove_items
        self.show_column = show_column
        self.set_column_title = set_column_title

        self.attrs: Dict[str, Any] = {}
        self.title: Any = None
        self.text: str = ""
        self.frame_src: str | None = None
        self.errors: List[str] = []
        self.form: Any = None
        self.bus = EventBus()

    def attr(self, name: str, value: Any = _MISSING) -> Any:
        if value is _MISSING:
            return self.attrs.get(name)
        self.attrs[name] = value
        return value

    @property
    def readonly(self) -> bool:
        return bool(self.attrs.get("readonly"))

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Widget(kind={self.kind!r}, name={self.name!r}, path={self.path!r})"


class WidgetRegistry:
    def __init__(self) -> None:
        self._regions: Dict[str, List[Widget]] = {region: [] for region in REGIONS}

    def add(self, widget: Widget) -> Widget:
        self._regions[widget.region].append(widget)
        return widget

    def remove(self, widget: Widget) -> bool:
        items = self._regions[widget.region]
        if widget in items:
            items.remove(widget)
            return True
        return False

    def __iter__(self) -> Iterator[Widget]:
        for region in REGIONS:
            yield from self._regions[region]

    def by_path(self, path: str) -> list[Widget]:
        return [w for w in self if w.path == path]

    def by_name(self, name: str) -> list[Widget]:
        return [w for w in self if w.name == name]
