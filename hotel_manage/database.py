"""
数据库配置 - 持久化层
显式构造的存储句柄：进程启动时打开，关闭时 close()，不在模块导入时建立连接
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from hotel_manage.config import Settings, get_settings
from hotel_manage.logging_config import LogCategory, get_category_logger

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    存储句柄

    使用方式：
        db = Database(settings=settings)
        with db.session_scope() as session:
            ...
        db.close()
    """

    def __init__(self, url: Optional[str] = None, settings: Optional[Settings] = None, **engine_kwargs):
        self.settings = settings or get_settings()
        self.url = make_url(url or self.settings.database_url)
        self.engine: Engine = create_engine(self.url, **self._engine_options(engine_kwargs))
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        if self.is_postgres and self.settings.POSTGRES_SCHEMA:
            event.listen(self.engine, "connect", self._set_search_path)
        if self.settings.DB_ECHO:
            event.listen(self.engine, "before_cursor_execute", self._log_statement)

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"

    @property
    def is_postgres(self) -> bool:
        return self.url.get_backend_name() == "postgresql"

    def _engine_options(self, overrides: dict) -> dict:
        if self.is_sqlite:
            options = {"connect_args": {"check_same_thread": False}}
            if self.url.database in (None, "", ":memory:"):
                options["poolclass"] = StaticPool
        else:
            options = {
                "pool_size": self.settings.DB_POOL_SIZE,
                "max_overflow": self.settings.DB_MAX_OVERFLOW,
                "pool_timeout": self.settings.DB_POOL_TIMEOUT,
                "pool_pre_ping": True,
                "connect_args": {
                    "application_name": self.settings.DB_APPLICATION_NAME,
                    "connect_timeout": self.settings.DB_CONNECT_TIMEOUT,
                    "keepalives": 1,
                },
            }
        options.update(overrides)
        return options

    def _set_search_path(self, dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f'SET search_path TO "{self.settings.POSTGRES_SCHEMA}", public')
        finally:
            cursor.close()

    def _log_statement(self, conn, cursor, statement, parameters, context, executemany) -> None:
        get_category_logger(LogCategory.SQL).info(statement)

    def session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """事务作用域：成功提交，异常回滚，始终关闭"""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """创建缺失的表"""
        from hotel_manage import models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        from hotel_manage import models  # noqa: F401
        Base.metadata.drop_all(bind=self.engine)

    def sync(self, force: bool = False, alter: bool = False) -> None:
        """
        同步表结构

        Args:
            force: 删除并重建所有表（数据全部丢失）
            alter: 创建缺失的表，并为已有表补齐缺失的列（不删除任何列）
        """
        if force:
            logger.warning("Dropping all tables before sync")
            self.drop_all()
        self.create_all()
        if alter and not force:
            self._add_missing_columns()
        logger.info(f"Database synchronized (force={force}, alter={alter})")

    def _add_missing_columns(self) -> None:
        inspector = inspect(self.engine)
        preparer = self.engine.dialect.identifier_preparer
        with self.engine.begin() as conn:
            for table in Base.metadata.sorted_tables:
                existing = {col["name"] for col in inspector.get_columns(table.name, schema=table.schema)}
                for column in table.columns:
                    if column.name in existing:
                        continue
                    col_type = column.type.compile(dialect=self.engine.dialect)
                    conn.execute(text(
                        f"ALTER TABLE {preparer.format_table(table)} "
                        f"ADD COLUMN {preparer.quote(column.name)} {col_type}"
                    ))
                    logger.info(f"Added column {table.name}.{column.name}")

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()
