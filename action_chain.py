"""Action response interpreter: walks response items and applies their directives in order."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from attr_apply import apply_attrs
from field_errors import attach_error
from field_locator import locate
from formact.ids import unique_id
from record_merge import update_values


logger = logging.getLogger("formact.actions")

RECORD_VIEW_TYPES = ("grid", "form")

_WIRE_KEYS = {
    "signal-data": "signal_data",
    "exportFile": "export_file",
    "canClose": "can_close",
}


@dataclass
class ChainRejected(Exception):
    error: Any = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return "" if self.error is None else str(self.error)


@dataclass
class ResponseItemError(Exception):
    message: str

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.message


@dataclass
class ActionResponseItem:
    flash: Any = None
    info: Any = None
    notify: Any = None
    error: Any = None
    action: str | None = None
    alert: Any = None
    pending: str | None = None
    errors: Dict[str, Any] | None = None
    values: Dict[str, Any] | None = None
    reload: bool = False
    save: bool = False
    signal: str | None = None
    signal_data: Any = None
    export_file: str | None = None
    attrs: Dict[str, Dict[str, Any]] | None = None
    view: Dict[str, Any] | None = None
    can_close: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "ActionResponseItem":
        if data is None:
            return cls()
        if isinstance(data, ActionResponseItem):
            return data
        if not isinstance(data, dict):
            raise ResponseItemError("response item must be object")
        known = set(cls.__dataclass_fields__) - {"extra"}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            name = _WIRE_KEYS.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        return cls(extra=extra, **kwargs)


@dataclass
class _Done:
    pending: Any = None


def normalize_view(view: dict, form_scope: Any = None) -> dict:
    """Build an open-tab descriptor from a `view` directive."""
    tab = dict(view)
    tab["action"] = unique_id("$act")
    if not tab.get("viewType"):
        tab["viewType"] = "grid"
    view_type = tab["viewType"]
    if view_type in RECORD_VIEW_TYPES:
        tab["model"] = tab.get("model") or tab.get("resource")
    if not tab.get("views"):
        first = {"type": view_type}
        if view_type == "html":
            first.update({"resource": tab.get("resource"), "title": tab.get("title")})
        tab["views"] = [first]
    else:
        tab["views"] = [dict(v) for v in tab["views"]]
    if view_type in RECORD_VIEW_TYPES:
        types = {v.get("type") for v in tab["views"]}
        if "grid" not in types:
            tab["views"].append({"type": "grid"})
        if "form" not in types:
            tab["views"].append({"type": "form"})
    params = tab.get("params")
    if isinstance(params, dict) and params.get("popup"):
        tab["$popupParent"] = form_scope
    return tab


class ActionChainRunner:
    """Sequential interpreter for the items of one action response.

    Each item is evaluated against a fixed priority table. A directive either
    falls through to the next one or settles the item, optionally with a
    pending action name. A pending name abandons the rest of the list and
    starts the named action's own chain. Rejection is raised as
    `ChainRejected` and stops everything after it.
    """

    _DIRECTIVES = (
        ("flash", "_do_flash"),
        ("notify", "_do_notify"),
        ("error", "_do_error"),
        ("alert", "_do_alert"),
        ("errors", "_do_errors"),
        ("values", "_do_values"),
        ("reload", "_do_reload"),
        ("save", "_do_save"),
        ("signal", "_do_signal"),
        ("export_file", "_do_export"),
        ("attrs", "_do_attrs"),
        ("view", "_do_view"),
        ("can_close", "_do_can_close"),
    )

    def __init__(self, handler: Any) -> None:
        self.handler = handler
        self.scope = handler.scope
        self.services = handler.services

    @property
    def form_scope(self) -> Any:
        return self.handler.form_scope

    async def run(self, items: List[Any]) -> None:
        for idx, raw in enumerate(items):
            item = ActionResponseItem.from_dict(raw)
            pending = await self.dispatch(item)
            if isinstance(pending, str):
                logger.info("chain_pending index=%s pending=%s", idx, pending)
                await self.handler.run_action(pending)
                return
            await self._settle()

    async def dispatch(self, item: ActionResponseItem) -> Any:
        """Evaluate one item and return its pending action name, if any."""
        for directive, method in self._DIRECTIVES:
            if not self._present(item, directive):
                continue
            outcome = await getattr(self, method)(item)
            if isinstance(outcome, _Done):
                return outcome.pending
        return item.pending

    @staticmethod
    def _present(item: ActionResponseItem, directive: str) -> bool:
        if directive == "flash":
            return bool(item.flash or item.info)
        if directive == "values":
            return item.values is not None
        return bool(getattr(item, directive))

    async def _settle(self) -> None:
        await asyncio.sleep(0)
        ui = self.services.ui
        if ui is not None:
            await ui.wait_idle(0)

    def _future(self) -> asyncio.Future:
        return asyncio.get_running_loop().create_future()

    @staticmethod
    def _resolver(future: asyncio.Future):
        def resolve(value: Any = None) -> None:
            if not future.done():
                future.set_result(value)

        return resolve

    async def _do_flash(self, item: ActionResponseItem) -> None:
        self.services.dialogs.say(item.flash or item.info)

    async def _do_notify(self, item: ActionResponseItem) -> None:
        self.services.notify.info(item.notify)

    async def _do_error(self, item: ActionResponseItem) -> _Done:
        acknowledged = self._future()
        self.services.dialogs.error(item.error, self._resolver(acknowledged))
        await acknowledged
        if item.action:
            logger.info("chain_error_recovery action=%s", item.action)
            return _Done(item.action)
        logger.info("chain_rejected reason=error")
        raise ChainRejected(item.error)

    async def _do_alert(self, item: ActionResponseItem) -> _Done:
        answer = self._future()
        self.services.dialogs.confirm(
            item.alert,
            self._resolver(answer),
            {"title": "Warning", "yes_no": False},
        )
        if await answer:
            return _Done(item.pending)
        if item.action:
            await self.handler.run_action(item.action)
        logger.info("chain_rejected reason=alert_declined")
        raise ChainRejected()

    async def _do_errors(self, item: ActionResponseItem) -> None:
        for name, message in item.errors.items():
            widgets = locate(name, self.form_scope, self.scope.form_path)
            attach_error(self.scope, widgets[0] if widgets else None, message)
        logger.info("chain_rejected reason=field_errors fields=%s", sorted(item.errors))
        raise ChainRejected(item.errors)

    async def _do_values(self, item: ActionResponseItem) -> None:
        update_values(item.values, self.scope.record, self.scope, self.form_scope)
        if self.scope.on_change_notify is not None:
            self.scope.on_change_notify(self.scope, item.values)
        self.handler.invalidate_context()
        if self.services.ui is not None:
            self.services.ui.adjust_size()

    async def _do_reload(self, item: ActionResponseItem) -> _Done:
        self.handler.invalidate_context()
        await self.scope.reload(True)
        return _Done(item.pending)

    async def _do_save(self, item: ActionResponseItem) -> _Done:
        await asyncio.sleep(0)
        await self.handler.save()
        if self.services.ui is not None:
            await self.services.ui.wait_idle(self.services.save_settle_delay)
        return _Done(item.pending)

    async def _do_signal(self, item: ActionResponseItem) -> None:
        self.form_scope.broadcast(item.signal, item.signal_data)

    async def _do_export(self, item: ActionResponseItem) -> None:
        frames = self.services.frames
        if frames is None:
            logger.warning("export_skipped reason=no_frames token=%s", item.export_file)
            return
        frame = frames.open(self.services.export_url(item.export_file))
        asyncio.get_running_loop().call_later(
            self.services.export_cleanup_delay, frames.close, frame
        )

    async def _do_attrs(self, item: ActionResponseItem) -> None:
        for name, item_attrs in item.attrs.items():
            widgets = locate(name, self.form_scope, self.scope.form_path)
            for idx, widget in enumerate(widgets):
                await apply_attrs(widget, item_attrs or {}, idx)

    async def _do_view(self, item: ActionResponseItem) -> None:
        tab = normalize_view(item.view, self.form_scope)
        navigator = self.services.navigator
        if navigator is None:
            logger.warning("open_tab_skipped reason=no_navigator action=%s", tab["action"])
            return
        navigator.open_tab(tab)

    async def _do_can_close(self, item: ActionResponseItem) -> None:
        if self.scope.on_ok is not None:
            self.scope.on_ok()
