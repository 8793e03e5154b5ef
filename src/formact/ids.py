"""Process-wide unique id generation for view descriptors."""

from __future__ import annotations

import itertools
import threading

_counter = itertools.count(1)
_lock = threading.Lock()


def unique_id(prefix: str = "") -> str:
    with _lock:
        value = next(_counter)
    return f"{prefix}{value}"
