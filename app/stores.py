"""In-memory collaborators for the action engine (tests and embedding)."""

from __future__ import annotations

import asyncio
import copy
import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from formact.equality import is_transient_key


Issue = Dict[str, Any]


def _issue(code: str, message: str, path: str | None = None, detail: dict | None = None) -> Issue:
    return {"code": code, "message": message, "path": path, "detail": detail}


@dataclass
class DataSourceError(Exception):
    issues: List[Issue] = field(default_factory=list)

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return "; ".join(f"{i['code']}: {i['message']}" for i in self.issues)


def _strip_transient(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _strip_transient(v) for k, v in value.items() if not is_transient_key(k)}
    if isinstance(value, list):
        return [_strip_transient(v) for v in value]
    return value


class MemoryDataSource:
    def __init__(self, model: str, required: List[str] | None = None) -> None:
        self.model = model
        self.required = list(required or [])
        self._records: Dict[Any, dict] = {}
        self._ids = itertools.count(1)
        self.saved: List[dict] = []

    def validate(self, record: dict) -> List[Issue]:
        issues = []
        for name in self.required:
            if record.get(name) in (None, ""):
                issues.append(_issue("FIELD_REQUIRED", "Field is required", name))
        record_id = record.get("id")
        if record_id is not None:
            current = self._records.get(record_id)
            if current is None:
                issues.append(_issue("RECORD_NOT_FOUND", "Record not found", "id", {"id": record_id}))
            elif record.get("version") is not None and record["version"] != current.get("version"):
                issues.append(
                    _issue(
                        "VERSION_CONFLICT",
                        "Record was modified by another session",
                        "version",
                        {"expected": current.get("version"), "got": record["version"]},
                    )
                )
        return issues

    async def save(self, record: dict) -> dict:
        values = _strip_transient(record)
        values.pop("_original", None)
        issues = self.validate(values)
        if issues:
            raise DataSourceError(issues)
        record_id = values.get("id")
        if record_id is None:
            record_id = next(self._ids)
            values["id"] = record_id
            values["version"] = 0
        else:
            values = {**self._records[record_id], **values}
            values["version"] = self._records[record_id].get("version", 0) + 1
        self._records[record_id] = copy.deepcopy(values)
        self.saved.append(copy.deepcopy(values))
        return copy.deepcopy(values)

    async def read(self, record_id: Any) -> dict:
        record = self._records.get(record_id)
        if record is None:
            raise DataSourceError([_issue("RECORD_NOT_FOUND", "Record not found", "id", {"id": record_id})])
        return copy.deepcopy(record)

    def put(self, record: dict) -> dict:
        stored = copy.deepcopy(record)
        stored.setdefault("id", next(self._ids))
        stored.setdefault("version", 0)
        self._records[stored["id"]] = stored
        return copy.deepcopy(stored)


class ScriptedActionInvoker:
    """Replies to named actions from a script.

    A script entry is a list of response items, a full `{"data", "errors"}`
    response, or a callable taking the context and returning either.
    """

    def __init__(self, script: Dict[str, Any] | None = None) -> None:
        self.script: Dict[str, Any] = dict(script or {})
        self.calls: List[tuple] = []

    async def invoke(self, action: str, model: str | None, context: dict) -> dict:
        self.calls.append((action, model, copy.deepcopy(context)))
        await asyncio.sleep(0)
        reply = self.script.get(action, [])
        if callable(reply):
            reply = reply(context)
        if isinstance(reply, dict):
            return {"data": list(reply.get("data") or []), "errors": reply.get("errors")}
        return {"data": copy.deepcopy(list(reply)), "errors": None}

    @property
    def actions(self) -> List[str]:
        return [call[0] for call in self.calls]


class RecordingDialogs:
    def __init__(self, answers: List[bool] | None = None) -> None:
        self.answers = list(answers or [])
        self.said: List[Any] = []
        self.errors: List[Any] = []
        self.confirms: List[tuple] = []

    def _later(self, callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is not None:
            asyncio.get_running_loop().call_soon(callback, *args)

    def confirm(self, message: Any, callback: Callable[[bool], Any], options: dict | None = None) -> None:
        self.confirms.append((message, dict(options or {})))
        answer = self.answers.pop(0) if self.answers else True
        self._later(callback, answer)

    def error(self, message: Any, callback: Callable[[], Any] | None = None) -> None:
        self.errors.append(message)
        self._later(callback)

    def say(self, message: Any) -> None:
        self.said.append(message)


class RecordingNotify:
    def __init__(self) -> None:
        self.infos: List[Any] = []
        self.errors: List[tuple] = []

    def info(self, message: Any) -> None:
        self.infos.append(message)

    def error(self, message: Any, title: str | None = None) -> None:
        self.errors.append((message, title))


class MemoryNavigator:
    def __init__(self) -> None:
        self.tabs: List[dict] = []

    def open_tab(self, tab: dict) -> None:
        self.tabs.append(tab)


class MemoryDownloadFrames:
    def __init__(self) -> None:
        self.opened: List[str] = []
        self.closed: List[str] = []

    def open(self, url: str) -> str:
        self.opened.append(url)
        return url

    def close(self, frame: str) -> None:
        self.closed.append(frame)


class RecordingUi:
    def __init__(self) -> None:
        self.blocks = 0
        self.adjusts = 0
        self.idle_waits: List[float] = []

    def block(self) -> None:
        self.blocks += 1

    def adjust_size(self) -> None:
        self.adjusts += 1

    async def wait_idle(self, delay: float = 0.0) -> None:
        self.idle_waits.append(delay)
        await asyncio.sleep(0)
