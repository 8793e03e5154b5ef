"""Queue of nested record updates awaiting reconciliation by their owning widget."""

from __future__ import annotations

import copy
from typing import Any, Dict, List


Entry = Dict[str, Any]


class NestedValuesOutbox:
    def __init__(self) -> None:
        self._entries: List[Entry] = []

    def enqueue(self, path: str, values: dict) -> None:
        if not isinstance(values, dict):
            raise TypeError("values must be object")
        self._entries.append({"path": path, "values": copy.deepcopy(values)})

    def pending(self, path: str | None = None) -> list[Entry]:
        if path is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry["path"] == path]

    def drain(self, path: str) -> list[dict]:
        """Remove and return the queued values for `path`, oldest first."""
        taken = []
        kept = []
        for entry in self._entries:
            if entry["path"] == path:
                taken.append(entry["values"])
            else:
                kept.append(entry)
        self._entries = kept
        return taken

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
