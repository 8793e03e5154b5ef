from __future__ import annotations

import asyncio
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Set

import httpx


logger = logging.getLogger("formact.transport")

VALIDATION_STATUS = -4


@dataclass
class TransportError(Exception):
    code: str
    message: str
    status: int | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (status={self.status})" if self.status is not None else base


async def _post_json(client: httpx.AsyncClient, url: str, payload: dict) -> dict:
    try:
        res = await client.post(url, json=payload)
    except httpx.HTTPError as exc:
        raise TransportError("HTTP_FAILED", str(exc)) from exc
    if res.status_code >= 400:
        raise TransportError("HTTP_STATUS", res.text, res.status_code)
    try:
        body = res.json()
    except ValueError as exc:
        raise TransportError("RESPONSE_INVALID", "response is not JSON", res.status_code) from exc
    if not isinstance(body, dict):
        raise TransportError("RESPONSE_INVALID", "response must be object", res.status_code)
    status = body.get("status", 0)
    if status == VALIDATION_STATUS and body.get("errors"):
        logger.info("response_validation_errors url=%s fields=%s", url, sorted(body["errors"]))
        return body
    if status not in (0, None):
        data = body.get("data")
        message = data.get("message") if isinstance(data, dict) else None
        raise TransportError("RESPONSE_STATUS", message or f"status {status}", res.status_code)
    return body


class HttpActionInvoker:
    """Remote action invoker speaking the `ws/action` envelope."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def invoke(self, action: str, model: str | None, context: dict) -> dict:
        payload = {"action": action, "model": model, "data": {"context": context}}
        logger.info("action_request action=%s model=%s", action, model)
        body = await _post_json(self._client, "ws/action", payload)
        data = body.get("data")
        if data is None or (body.get("errors") and not isinstance(data, list)):
            data = []
        if not isinstance(data, list):
            raise TransportError("RESPONSE_INVALID", "data must be list")
        return {"data": data, "errors": body.get("errors")}


class HttpDataSource:
    def __init__(self, client: httpx.AsyncClient, model: str) -> None:
        self._client = client
        self.model = model

    def _first(self, body: dict) -> dict:
        if body.get("status") == VALIDATION_STATUS:
            raise TransportError("RESPONSE_ERRORS", str(body["errors"]))
        data = body.get("data")
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0]
        raise TransportError("RESPONSE_INVALID", "expected a record in data")

    async def save(self, record: dict) -> dict:
        body = await _post_json(self._client, f"ws/rest/{self.model}", {"data": record})
        return self._first(body)

    async def read(self, record_id: Any) -> dict:
        body = await _post_json(self._client, f"ws/rest/{self.model}/{record_id}/fetch", {})
        return self._first(body)


class HttpDownloadFrames:
    """Transient download frames: each open link streams into the export directory.

    Closing a frame releases its handle only. A transfer still in flight keeps
    running until it lands or fails.
    """

    def __init__(self, client: httpx.AsyncClient, export_dir: str | os.PathLike) -> None:
        self._client = client
        self._export_dir = Path(export_dir)
        self._tasks: Dict[str, asyncio.Task] = {}
        self._detached: Set[asyncio.Task] = set()
        self.downloaded: Dict[str, Path] = {}

    def open(self, url: str) -> str:
        frame = uuid.uuid4().hex
        self._tasks[frame] = asyncio.get_running_loop().create_task(self._download(frame, url))
        return frame

    def close(self, frame: str) -> None:
        task = self._tasks.pop(frame, None)
        if task is not None and not task.done():
            logger.info("export_download_detached frame=%s", frame)
            self._detached.add(task)
            task.add_done_callback(self._detached.discard)

    async def wait(self) -> None:
        """Wait for every download still running, open or detached."""
        tasks = [*self._tasks.values(), *self._detached]
        if tasks:
            await asyncio.gather(*tasks)

    async def _download(self, frame: str, url: str) -> None:
        self._export_dir.mkdir(parents=True, exist_ok=True)
        target = self._export_dir / (url.rstrip("/").rsplit("/", 1)[-1] or frame)
        try:
            async with self._client.stream("GET", url) as res:
                if res.status_code >= 400:
                    logger.warning("export_download_failed url=%s status=%s", url, res.status_code)
                    return
                with target.open("wb") as fh:
                    async for chunk in res.aiter_bytes():
                        fh.write(chunk)
        except httpx.HTTPError as exc:
            logger.warning("export_download_failed url=%s error=%s", url, exc)
            return
        self.downloaded[frame] = target
        logger.info("export_downloaded url=%s path=%s", url, target)


def make_client(base_url: str, timeout: float = 30.0, **kwargs: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, timeout=timeout, **kwargs)
