from __future__ import annotations

import logging
from typing import Any

import httpx

from action_handler import ActionHandler, bind_actions
from app.config import Settings
from app.transport import HttpActionInvoker, HttpDataSource, HttpDownloadFrames, make_client
from form_scope import FormScope


logger = logging.getLogger("formact.session")


class FormSession:
    """One connection to the server plus the collaborators every form handler shares."""

    def __init__(
        self,
        dialogs: Any,
        notify: Any,
        *,
        navigator: Any = None,
        ui: Any = None,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self._owns_client = client is None
        self.client = client or make_client(self.settings.base_url, self.settings.http_timeout)
        self.frames = HttpDownloadFrames(self.client, self.settings.export_dir)
        self.services = self.settings.build_services(
            HttpActionInvoker(self.client),
            dialogs,
            notify,
            navigator=navigator,
            ui=ui,
            frames=self.frames,
        )

    async def __aenter__(self) -> "FormSession":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.frames.wait()
        if self._owns_client:
            await self.client.aclose()

    def open_form(self, model: str, record: dict | None = None, **kwargs: Any) -> FormScope:
        scope = FormScope(model, record, data_source=HttpDataSource(self.client, model), **kwargs)
        logger.info("form_opened model=%s id=%s", model, (record or {}).get("id"))
        return scope

    def handler(self, scope: FormScope, action: str, element: Any = None, **options: Any) -> ActionHandler:
        return ActionHandler(scope, self.services, action=action, element=element, **options)

    def bind(self, scope: FormScope, element: Any, props: dict | None) -> dict:
        return bind_actions(scope, element, props, self.services)
