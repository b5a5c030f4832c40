"""
Category logging tests.

Covers:
- get_category_logger stamps category and context
- configure_logging: per-category files, error file, test environment, idempotence
"""
import logging
from logging.handlers import TimedRotatingFileHandler

import pytest

from hotel_manage.config import Settings
from hotel_manage.logging_config import (
    ROOT_LOGGER_NAME,
    LogCategory,
    configure_logging,
    get_category_logger,
    log_directory,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _flush(root):
    for handler in root.handlers:
        handler.flush()


class TestCategoryLogger:

    def test_stamps_category_and_context(self, caplog):
        logger = get_category_logger(LogCategory.AUTH, req_ip="10.0.0.1")
        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            logger.info("login", extra={"session_id": "abc"})

        record = caplog.records[-1]
        assert record.name == "hotel_manage.auth"
        assert record.category == "auth"
        assert record.req_ip == "10.0.0.1"
        assert record.session_id == "abc"


class TestConfigureLogging:

    def test_log_directory(self, tmp_path):
        dev = Settings(_env_file=None, ENVIRONMENT="development", LOG_DIR=str(tmp_path))
        prod = Settings(_env_file=None, ENVIRONMENT="production", LOG_DIR=str(tmp_path))
        assert log_directory(dev) == tmp_path / "dev"
        assert log_directory(prod) == tmp_path / "prod"

    def test_test_environment_writes_no_files(self, tmp_path, restore_logging):
        settings = Settings(_env_file=None, ENVIRONMENT="test", LOG_DIR=str(tmp_path))
        root = configure_logging(settings)
        assert not any(isinstance(h, TimedRotatingFileHandler) for h in root.handlers)
        assert not (tmp_path / "dev").exists()

    def test_category_files(self, tmp_path, restore_logging):
        settings = Settings(_env_file=None, ENVIRONMENT="production", LOG_DIR=str(tmp_path))
        root = configure_logging(settings)

        get_category_logger(LogCategory.AUTH).info("password check")
        get_category_logger(LogCategory.ACTIONS).info("role assigned")
        get_category_logger(LogCategory.AUTH).error("corrupt hash")
        logging.getLogger("hotel_manage.database").info("plain record")
        _flush(root)

        log_dir = tmp_path / "prod"
        auth = (log_dir / "auth.log").read_text(encoding="utf-8")
        actions = (log_dir / "actions.log").read_text(encoding="utf-8")
        error = (log_dir / "error.log").read_text(encoding="utf-8")
        combined = (log_dir / "combined.log").read_text(encoding="utf-8")

        assert "password check" in auth and "role assigned" not in auth
        assert "role assigned" in actions and "password check" not in actions
        assert "corrupt hash" in error and "password check" not in error
        assert "[combined]" in combined and "plain record" in combined
        assert all(msg in combined for msg in ("password check", "role assigned", "corrupt hash"))

    def test_reconfigure_replaces_handlers(self, tmp_path, restore_logging):
        settings = Settings(_env_file=None, ENVIRONMENT="production", LOG_DIR=str(tmp_path))
        first = len(configure_logging(settings).handlers)
        second = len(configure_logging(settings).handlers)
        assert first == second

    def test_console_outside_production(self, tmp_path, restore_logging):
        settings = Settings(_env_file=None, ENVIRONMENT="test", LOG_DIR=str(tmp_path))
        root = configure_logging(settings)
        assert any(type(h) is logging.StreamHandler for h in root.handlers)
