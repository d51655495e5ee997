import logging
import logging.handlers

import structlog
from ordering.utils.logging import add_context, clear_context, configure_logging, get_log_level


class TestLogLevel:
    def test_level_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert get_log_level("production") == "INFO"
        assert get_log_level("development") == "DEBUG"
        assert get_log_level("test") == "WARNING"
        assert get_log_level("unknown") == "INFO"

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        assert get_log_level("development") == "ERROR"


class TestConfigureLogging:
    def test_file_handler_only_with_log_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_DIR", str(tmp_path))
        configure_logging("test")

        handlers = logging.getLogger().handlers
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)
        assert logging.getLogger("protean").level == logging.WARNING

        monkeypatch.delenv("LOG_DIR")
        configure_logging("test")
        assert not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logging.getLogger().handlers)

    def test_bound_context(self):
        clear_context()
        add_context(order_id="ord-001")
        assert structlog.contextvars.get_contextvars() == {"order_id": "ord-001"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
