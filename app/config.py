from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from services import EXPORT_PREFIX, ActionServices


logger = logging.getLogger("formact.config")

DEFAULT_ENV_FILE = Path(".env")


def load_env_file(path: Path) -> int:
    """Export `KEY=value` lines from `path` without touching variables already set.

    Returns how many variables were exported.
    """
    if not path.is_file():
        return 0
    exported = 0
    for raw in path.read_text(encoding="utf-8").splitlines():
        entry = raw.strip()
        if entry.startswith("export "):
            entry = entry[len("export "):].lstrip()
        if not entry or entry.startswith("#") or "=" not in entry:
            continue
        name, _, value = entry.partition("=")
        name = name.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        if name and name not in os.environ:
            os.environ[name] = value
            exported += 1
    logger.debug("env_file_loaded path=%s exported=%s", path, exported)
    return exported


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    base_url: str = "http://localhost:8080/"
    http_timeout: float = 30.0
    block_ui_delay_ms: float = 100.0
    save_settle_ms: float = 100.0
    export_cleanup_seconds: float = 5.0
    export_dir: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Path | None = DEFAULT_ENV_FILE) -> "Settings":
        if env_file is not None:
            load_env_file(env_file)
        base_url = (os.getenv("FORMACT_BASE_URL") or "").strip() or cls.base_url
        if not base_url.endswith("/"):
            base_url += "/"
        return cls(
            base_url=base_url,
            http_timeout=_env_float("FORMACT_HTTP_TIMEOUT", cls.http_timeout),
            block_ui_delay_ms=_env_float("FORMACT_BLOCK_UI_DELAY_MS", cls.block_ui_delay_ms),
            save_settle_ms=_env_float("FORMACT_SAVE_SETTLE_MS", cls.save_settle_ms),
            export_cleanup_seconds=_env_float("FORMACT_EXPORT_CLEANUP_SECONDS", cls.export_cleanup_seconds),
            export_dir=(os.getenv("FORMACT_EXPORT_DIR") or "").strip() or tempfile.gettempdir(),
            log_level=(os.getenv("FORMACT_LOG_LEVEL") or "").strip().upper() or cls.log_level,
        )

    def build_services(self, invoker: Any, dialogs: Any, notify: Any, **collaborators: Any) -> ActionServices:
        return ActionServices(
            invoker=invoker,
            dialogs=dialogs,
            notify=notify,
            block_ui_delay=self.block_ui_delay_ms / 1000.0,
            save_settle_delay=self.save_settle_ms / 1000.0,
            export_cleanup_delay=self.export_cleanup_seconds,
            export_prefix=EXPORT_PREFIX,
            **collaborators,
        )


def configure_logging(settings: Settings | None = None) -> None:
    level_name = (settings or Settings.from_env()).log_level
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO))
