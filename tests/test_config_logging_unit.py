"""
Unit tests for settings loading and logging configuration.
"""

import logging

import pytest

from lineageweaver.config.settings import (
    Settings,
    SyncSettings,
    get_env_bool,
    get_env_float,
    get_env_int,
)
from lineageweaver.system.logging_config import (
    StructuredFormatter,
    get_logger,
    log_transfer_event,
    setup_logging,
)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_sync_defaults(self, monkeypatch):
        monkeypatch.delenv("SYNC_BATCH_THRESHOLD", raising=False)
        monkeypatch.delenv("SYNC_BATCH_CEILING", raising=False)

        sync = SyncSettings()

        assert sync.batch_threshold == 450
        assert sync.batch_ceiling == 500
        assert sync.batch_threshold < sync.batch_ceiling

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SYNC_BATCH_THRESHOLD", "100")
        monkeypatch.setenv("SYNC_POLL_INTERVAL", "2.5")
        monkeypatch.setenv("REMOTE_VERIFY_SSL", "false")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")

        config = Settings()

        assert config.sync.batch_threshold == 100
        assert config.sync.connectivity_poll_interval == 2.5
        assert config.remote.remote_verify_ssl is False
        assert config.database.database_url == "sqlite:///:memory:"

    def test_invalid_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("LW_TEST_INT", "many")
        monkeypatch.setenv("LW_TEST_FLOAT", "soon")

        assert get_env_int("LW_TEST_INT", 7) == 7
        assert get_env_float("LW_TEST_FLOAT", 1.5) == 1.5

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("on", True), ("no", False)])
    def test_env_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("LW_TEST_BOOL", raw)
        assert get_env_bool("LW_TEST_BOOL") is expected


class TestLogging:
    """Tests for logging setup and helpers."""

    @pytest.fixture
    def restore_logging(self):
        root = logging.getLogger()
        transfer = logging.getLogger("transfer")
        saved = (list(root.handlers), root.level, list(transfer.handlers), transfer.propagate)
        yield
        for handler in root.handlers + transfer.handlers:
            handler.close()
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
        transfer.handlers[:] = saved[2]
        transfer.propagate = saved[3]

    def test_setup_creates_log_files(self, tmp_path, restore_logging):
        setup_logging(str(tmp_path))

        logging.getLogger("lineageweaver.test").error("mirror failed", extra={"tenant_id": "t1"})
        log_transfer_event("t1", "upload", "people", 10)
        for handler in logging.getLogger().handlers + logging.getLogger("transfer").handlers:
            handler.flush()

        assert "mirror failed" in (tmp_path / "errors.log").read_text()
        assert "t1" in (tmp_path / "sync.log").read_text()
        assert "upload 10 people" in (tmp_path / "transfer.log").read_text()

    def test_structured_formatter_defaults(self):
        formatter = StructuredFormatter("%(service_name)s|%(tenant_id)s|%(message)s")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)

        assert formatter.format(record) == "lineageweaver-sync|None|hello"

    def test_get_logger_carries_context(self, caplog):
        adapter = get_logger("lineageweaver.context", tenant_id="t9")

        with caplog.at_level(logging.INFO, logger="lineageweaver.context"):
            adapter.info("bootstrap started")

        assert caplog.records[-1].tenant_id == "t9"
