"""Collaborators consumed by the action engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


EXPORT_PREFIX = "ws/files/data-export/"


@dataclass
class ActionServices:
    """Narrow interfaces the engine talks to.

    invoker:   `await invoke(action, model, context) -> {"data": [...], "errors": {...}}`
    dialogs:   `confirm(message, callback(confirmed), options)`, `error(message, callback)`, `say(message)`
    notify:    `info(message)`, `error(message, title=None)`
    navigator: `open_tab(tab)`
    ui:        `block()`, `adjust_size()`, `await wait_idle(delay)`
    frames:    `open(url) -> frame`, `close(frame)`
    """

    invoker: Any
    dialogs: Any
    notify: Any
    navigator: Any = None
    ui: Any = None
    frames: Any = None
    block_ui_delay: float = 0.1
    save_settle_delay: float = 0.1
    export_cleanup_delay: float = 5.0
    export_prefix: str = EXPORT_PREFIX

    def export_url(self, token: str) -> str:
        return f"{self.export_prefix}{token}"
