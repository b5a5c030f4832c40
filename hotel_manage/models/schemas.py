"""
Pydantic 数据记录 — 服务层对外返回的读写投影

UserPublic 为默认读投影，不含任何凭证字段；
UserCredentials 仅通过显式的提权读取路径返回。
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _strip_required(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("must not be blank")
    return value


# ============== Customer ==============

class CustomerCreate(BaseModel):
    customer_name: str = Field(..., max_length=250)
    customer_code: str = Field(..., max_length=10)
    customer_type_id: int
    fiscal_number: Optional[str] = Field(default=None, max_length=100)

    @field_validator("customer_name", "customer_code")
    @classmethod
    def check_not_blank(cls, value):
        return _strip_required(value)


class CustomerUpdate(BaseModel):
    """部分更新（未设置的字段保持不变）"""
    customer_name: Optional[str] = Field(default=None, max_length=250)
    customer_code: Optional[str] = Field(default=None, max_length=10)
    customer_type_id: Optional[int] = None
    fiscal_number: Optional[str] = Field(default=None, max_length=100)

    model_config = ConfigDict(extra="forbid")

    @field_validator("customer_name", "customer_code")
    @classmethod
    def check_not_blank(cls, value):
        return _strip_required(value)


class CustomerRead(BaseModel):
    customer_id: int
    customer_name: str
    customer_code: str
    customer_type_id: int
    fiscal_number: Optional[str] = None
    record_version: int
    creation_date: datetime
    creation_user: str
    last_update_date: Optional[datetime] = None
    last_update_user: Optional[str] = None
    last_update_process: str

    model_config = ConfigDict(from_attributes=True)


# ============== User ==============

class UserCreate(BaseModel):
    customer_id: int
    username: str = Field(..., max_length=150)
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., max_length=150)
    last_name: str = Field(..., max_length=150)

    @field_validator("username", "first_name", "last_name")
    @classmethod
    def check_not_blank(cls, value):
        return _strip_required(value)


class UserPublic(BaseModel):
    """默认读投影"""
    user_id: int
    customer_id: int
    username: str
    first_name: str
    last_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserCredentials(UserPublic):
    """提权读投影（含密码哈希）"""
    password: str


# ============== Role / Permission ==============

class RoleRead(BaseModel):
    id: int
    role_name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class PermissionRead(BaseModel):
    id: int
    permission_name: str
    end_point: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)
