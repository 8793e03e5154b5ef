"""Event-bound action handlers: context building, remote invocation and the save fast-path."""

from __future__ import annotations

import asyncio
import copy
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict

from action_chain import ActionChainRunner, ChainRejected
from event_bus import BEFORE_SAVE
from services import ActionServices


logger = logging.getLogger("formact.actions")

SYNC_PATTERN = re.compile(r"^sync\s*,\s*|^sync$")

EVENTS = {
    "onClick": "on_click",
    "onChange": "on_change",
    "onSelect": "on_select",
    "onNew": "on_new",
    "onLoad": "on_load",
    "onSave": "on_save",
}

INVALID_FORM_MESSAGE = "Please correct the invalid form values."
INVALID_FORM_TITLE = "Validation error"


@dataclass
class NoActionError(Exception):
    message: str = "No action provided."

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.message


class ActionHandler:
    def __init__(
        self,
        scope: Any,
        services: ActionServices,
        action: str | None = None,
        element: Any = None,
        can_save: bool | None = None,
        prompt: str | None = None,
    ) -> None:
        if not action:
            raise NoActionError()
        self.scope = scope
        self.services = services
        self.action = action
        self.element = element
        self.can_save = can_save
        self.prompt = prompt
        self._context: Dict[str, Any] | None = None

    async def on_load(self) -> None:
        await self.handle()

    async def on_new(self) -> None:
        await self.handle()

    async def on_save(self) -> None:
        await self.handle()

    async def on_select(self) -> None:
        await self.handle()

    async def on_click(self, event: Any = None) -> None:
        if self.prompt:
            answer = asyncio.get_running_loop().create_future()

            def resolve(confirmed: bool) -> None:
                if not answer.done():
                    answer.set_result(confirmed)

            self.services.dialogs.confirm(self.prompt, resolve, {"yes_no": False})
            if not await answer:
                raise ChainRejected()
        await self.handle()

    async def on_change(self, event: Any = None) -> None:
        # let same-tick edits land in the record first
        await asyncio.sleep(0)
        await self.handle()

    @property
    def form_scope(self) -> Any:
        form = getattr(self.element, "form", None)
        return form if form is not None else self.scope

    @property
    def context(self) -> Dict[str, Any]:
        if self._context is None:
            self._context = self._get_context()
        return self._context

    def invalidate_context(self) -> None:
        self._context = None

    def _get_context(self) -> Dict[str, Any]:
        scope = self.scope
        if scope.get_context is not None:
            current = scope.get_context()
        else:
            current = copy.deepcopy(scope.record)
        view_context = scope.view_params.get("context") or {}
        context = {**view_context, **current}

        # button name rides along as _signal for workflow transitions
        if self.element is not None and self.element.kind == "button":
            context["_signal"] = self.element.name
        return context

    async def handle(self) -> None:
        self.invalidate_context()
        await self.run_action(self.action.strip())

    def _block_ui(self) -> None:
        ui = self.services.ui
        if ui is None:
            return
        asyncio.get_running_loop().call_later(self.services.block_ui_delay, ui.block)

    async def save(self) -> None:
        self._block_ui()
        scope = self.scope

        if not scope.is_valid():
            if scope.show_error_notice is not None:
                scope.show_error_notice()
            else:
                self.services.notify.error(INVALID_FORM_MESSAGE, title=INVALID_FORM_TITLE)
            logger.info("save_rejected reason=invalid model=%s", scope.model)
            raise ChainRejected()
        if not scope.is_dirty():
            return

        values = {"_original": scope.original, **scope.record}
        self.invalidate_context()

        if scope.on_save is not None:
            await scope.on_save(values=values, call_on_save=False)
            return

        ds = scope.data_source
        saved = await ds.save(values)
        reader = scope.do_read if scope.do_read is not None else ds.read
        record = await reader(saved["id"])
        scope.edit_record(record)
        view_scope = scope.view_params.get("view_scope")
        if view_scope is not None:
            view_scope.update_route()
        logger.info("save_done model=%s id=%s", scope.model, saved.get("id"))

    async def run_action(self, action: str) -> None:
        self._block_ui()
        if not action:
            return

        match = SYNC_PATTERN.match(action)
        if match:
            action = action[match.end():]
            event = self.form_scope.broadcast(BEFORE_SAVE)
            if event.default_prevented:
                if event.error:
                    self.services.dialogs.error(event.error, None)
                await asyncio.sleep(0)
                logger.info("chain_rejected reason=before_save_prevented")
                raise ChainRejected(event.error)
            return await self.run_action(action)

        if action == "save":
            return await self.save()

        context = self.context
        model = context.get("_model") or self.scope.model
        logger.info("action_invoke action=%s model=%s", action, model)
        response = await self.services.invoker.invoke(action, model, context)
        response = response or {}
        items = list(response.get("data") or [])
        if response.get("errors"):
            items.insert(0, {"errors": response["errors"]})
        await ActionChainRunner(self).run(items)


class ActionService:
    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def handler(self, scope: Any, element: Any = None, options: dict | None = None) -> ActionHandler:
        opts = dict(options or {})
        opts["element"] = element
        return ActionHandler(scope, self.services, **opts)


def bind_actions(scope: Any, element: Any, props: dict | None, services: ActionServices) -> Dict[str, ActionHandler]:
    """Create one handler per action event declared on a field or schema and register it on the scope."""
    if not props:
        return {}
    handlers = {}
    for event_name, method in EVENTS.items():
        action = props.get(event_name)
        if action is None:
            continue
        handler = ActionHandler(
            scope,
            services,
            action=action,
            element=element,
            can_save=props.get("canSave"),
            prompt=props.get("prompt"),
        )
        scope.events[event_name] = getattr(handler, method)
        handlers[event_name] = handler
    return handlers
