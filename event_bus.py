"""Per-scope event bus for form broadcasts (before-save, edit, refresh, signals)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List


logger = logging.getLogger("formact.events")

Handler = Callable[["ScopeEvent"], None]

BEFORE_SAVE = "on:before-save"
EDIT = "on:edit"
ATTRS_REFRESH = "on:attrs-change:refresh"


@dataclass
class EventError(Exception):
    message: str

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.message


@dataclass
class EventValidationError(EventError):
    code: str
    path: str | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (path={self.path})" if self.path else base


def _raise(code: str, message: str, path: str | None = None) -> None:
    raise EventValidationError(code=code, message=message, path=path)


@dataclass
class ScopeEvent:
    name: str
    payload: Any = None
    default_prevented: bool = False
    error: Any = None

    def prevent_default(self, error: Any = None) -> None:
        self.default_prevented = True
        if error is not None:
            self.error = error


def validate_event(event: Any) -> None:
    if not isinstance(event, ScopeEvent):
        _raise("EVENT_INVALID", "event must be ScopeEvent")
    if not isinstance(event.name, str) or not event.name:
        _raise("EVENT_NAME_INVALID", "name must be non-empty string", "name")


def make_event(name: str, payload: Any = None) -> ScopeEvent:
    event = ScopeEvent(name=name, payload=payload)
    validate_event(event)
    return event


class EventBus:
    """Synchronous broadcast channel owned by one scope.

    Child buses receive everything published on their parent, the way a
    form broadcast reaches every widget below it.
    """

    def __init__(self, parent: "EventBus | None" = None) -> None:
        self._subs: Dict[str, List[Handler]] = {}
        self._children: List[EventBus] = []
        if parent is not None:
            parent.attach(self)

    def attach(self, child: "EventBus") -> None:
        if child is not self and child not in self._children:
            self._children.append(child)

    def detach(self, child: "EventBus") -> None:
        if child in self._children:
            self._children.remove(child)

    def subscribe(self, name: str, handler: Handler) -> Callable[[], bool]:
        self._subs.setdefault(name, []).append(handler)
        return lambda: self.unsubscribe(name, handler)

    def unsubscribe(self, name: str, handler: Handler) -> bool:
        handlers = self._subs.get(name)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
            if not handlers:
                del self._subs[name]
            return True
        except ValueError:
            return False

    def broadcast(self, name: str, payload: Any = None) -> ScopeEvent:
        event = make_event(name, payload)
        self._deliver(event)
        return event

    def _deliver(self, event: ScopeEvent) -> None:
        for handler in list(self._subs.get(event.name, [])):
            try:
                handler(event)
            except Exception:
                logger.exception("event_handler_failed event=%s", event.name)
        for child in list(self._children):
            child._deliver(event)
