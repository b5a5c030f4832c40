"""
分类日志配置
按类别（auth / actions / events / error / combined / sql）输出到按天轮转的日志文件

文件布局: <LOG_DIR>/dev 或 <LOG_DIR>/prod，每个类别一个文件，保留 LOG_BACKUP_DAYS 天。
测试环境不写文件；非生产环境额外输出到控制台。
"""
import logging
import sys
from enum import Enum
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from hotel_manage.config import Settings, get_settings

ROOT_LOGGER_NAME = "hotel_manage"

_HANDLER_MARK = "_hotel_manage_handler"


class LogCategory(str, Enum):
    """日志类别"""
    AUTH = "auth"
    ACTIONS = "actions"
    EVENTS = "events"
    ERROR = "error"
    COMBINED = "combined"
    SQL = "sql"


class CategoryFilter(logging.Filter):
    """只放行指定类别的记录"""

    def __init__(self, category: LogCategory):
        super().__init__()
        self.category = category

    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, "category", None) == self.category.value


class CategoryLoggerAdapter(logging.LoggerAdapter):
    """为每条记录附加 category 与请求上下文"""

    def process(self, msg: Any, kwargs: Dict[str, Any]):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


class _DefaultCategory(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "category"):
            record.category = LogCategory.COMBINED.value
        return True


def get_category_logger(category: LogCategory, **context: Any) -> CategoryLoggerAdapter:
    """
    获取带类别标记的日志器

    Args:
        category: 日志类别
        **context: 请求上下文（如 req_ip、req_url、session_id）
    """
    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{category.value}")
    return CategoryLoggerAdapter(logger, {"category": category.value, **context})


def log_directory(settings: Settings) -> Path:
    sub_dir = "prod" if settings.is_production else "dev"
    return Path(settings.LOG_DIR) / sub_dir


def _file_handler(path: Path, settings: Settings, level: int) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        path,
        when="midnight",
        backupCount=settings.LOG_BACKUP_DAYS,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(category)s] %(name)s: %(message)s"
    ))
    handler.addFilter(_DefaultCategory())
    setattr(handler, _HANDLER_MARK, True)
    return handler


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """配置分类日志（可重复调用，旧 handler 会被替换）"""
    settings = settings or get_settings()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(settings.LOG_LEVEL.upper())

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()
    if settings.ENVIRONMENT != "test":
        log_dir = log_directory(settings)
        log_dir.mkdir(parents=True, exist_ok=True)

        for category in (LogCategory.AUTH, LogCategory.ACTIONS, LogCategory.EVENTS, LogCategory.SQL):
            handler = _file_handler(log_dir / f"{category.value}.log", settings, logging.INFO)
            handler.addFilter(CategoryFilter(category))
            root.addHandler(handler)

        root.addHandler(_file_handler(log_dir / "error.log", settings, logging.ERROR))
        root.addHandler(_file_handler(log_dir / "combined.log", settings, logging.INFO))

    if not settings.is_production:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(
            "[%(asctime)s] %(levelname)s [%(category)s]: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        console.addFilter(_DefaultCategory())
        setattr(console, _HANDLER_MARK, True)
        root.addHandler(console)

    return root


__all__ = [
    "LogCategory",
    "CategoryFilter",
    "get_category_logger",
    "configure_logging",
    "log_directory",
]
