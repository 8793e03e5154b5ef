import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.config import Settings, configure_logging, load_env_file


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env(env_file=None)
        self.assertEqual(settings.base_url, "http://localhost:8080/")
        self.assertEqual(settings.block_ui_delay_ms, 100.0)
        self.assertEqual(settings.export_cleanup_seconds, 5.0)
        self.assertEqual(settings.log_level, "INFO")

    def test_env_overrides(self) -> None:
        env = {
            "FORMACT_BASE_URL": "https://erp.example.com/app",
            "FORMACT_BLOCK_UI_DELAY_MS": "250",
            "FORMACT_EXPORT_CLEANUP_SECONDS": "not-a-number",
            "FORMACT_LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env(env_file=None)
        self.assertEqual(settings.base_url, "https://erp.example.com/app/")
        self.assertEqual(settings.block_ui_delay_ms, 250.0)
        self.assertEqual(settings.export_cleanup_seconds, 5.0)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_build_services_converts_units(self) -> None:
        settings = Settings(block_ui_delay_ms=200, save_settle_ms=50, export_cleanup_seconds=2)
        services = settings.build_services(invoker="i", dialogs="d", notify="n", navigator="nav")
        self.assertEqual(services.block_ui_delay, 0.2)
        self.assertEqual(services.save_settle_delay, 0.05)
        self.assertEqual(services.export_cleanup_delay, 2)
        self.assertEqual(services.navigator, "nav")
        self.assertEqual(services.export_url("t1"), "ws/files/data-export/t1")

    def test_configure_logging_uses_level(self) -> None:
        with patch("app.config.logging.basicConfig") as basic:
            configure_logging(Settings(log_level="DEBUG"))
        basic.assert_called_once_with(level=10)


class TestLoadEnvFile(unittest.TestCase):
    def test_does_not_override_existing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text("# comment\nFORMACT_BASE_URL='http://a/'\nFORMACT_LOG_LEVEL=WARNING\nbroken\n", encoding="utf-8")
            with patch.dict(os.environ, {"FORMACT_LOG_LEVEL": "ERROR"}, clear=True):
                self.assertEqual(load_env_file(path), 1)
                self.assertEqual(os.environ["FORMACT_BASE_URL"], "http://a/")
                self.assertEqual(os.environ["FORMACT_LOG_LEVEL"], "ERROR")
            self.assertEqual(load_env_file(Path(tmp) / "missing.env"), 0)

    def test_from_env_reads_env_file_first(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text(
                "export FORMACT_BASE_URL=\"https://erp.example.com\"\nFORMACT_SAVE_SETTLE_MS=40\n",
                encoding="utf-8",
            )
            with patch.dict(os.environ, {"FORMACT_SAVE_SETTLE_MS": "10"}, clear=True):
                settings = Settings.from_env(env_file=path)
        self.assertEqual(settings.base_url, "https://erp.example.com/")
        self.assertEqual(settings.save_settle_ms, 10.0)


if __name__ == "__main__":
    unittest.main()
