"""
应用配置
从环境变量 / .env 读取配置，密码策略与数据库连接参数
"""
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, List, Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


DEFAULT_BCRYPT_ROUNDS = 10


@dataclass(frozen=True)
class PasswordPolicy:
    """密码复杂度策略

    rules 为额外的字符类规则（可插拔），默认为空；仅在 active 时生效。
    """
    active: bool = False
    min_length: int = 4
    rules: List[Callable[[str], bool]] = field(default_factory=list)


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Hotel Management"
    ENVIRONMENT: str = "development"

    # 密码策略
    PasswordComplexityActive: bool = False
    MinimumPasswordCharacters: int = Field(default=4, ge=1)
    BCRYPT_ROUNDS: int = Field(default=DEFAULT_BCRYPT_ROUNDS, ge=4, le=31)

    # 数据库配置
    DATABASE_URL: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "HotelManagement_DB"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_SCHEMA: Optional[str] = None
    DB_APPLICATION_NAME: str = "Hotel Management"
    DB_POOL_SIZE: int = 3
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_TIMEOUT: int = 45
    DB_CONNECT_TIMEOUT: int = 45
    DB_ECHO: bool = False

    # 审计字段默认值
    API_USER: str = "ApiUser"
    API_PROCESS: str = "hotel_management"

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_BACKUP_DAYS: int = 14

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("ENVIRONMENT")
    @classmethod
    def _check_environment(cls, value: str) -> str:
        if value not in ("development", "production", "test"):
            raise ValueError(f"unknown environment '{value}'")
        return value

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def database_url(self) -> str:
        """DATABASE_URL 优先，否则由 POSTGRES_* 组合"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return URL.create(
            "postgresql+psycopg2",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD or None,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            database=self.POSTGRES_DB,
        ).render_as_string(hide_password=False)

    @property
    def password_policy(self) -> PasswordPolicy:
        return PasswordPolicy(
            active=self.PasswordComplexityActive,
            min_length=self.MinimumPasswordCharacters,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
