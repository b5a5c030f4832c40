"""
core/security — 密码策略与权限提供者接口
"""
from hotel_manage.core.security.password import (
    check_password,
    hash_password,
    is_password_complex,
)
from hotel_manage.core.security.permission import IPermissionProvider

__all__ = [
    "check_password",
    "hash_password",
    "is_password_complex",
    "IPermissionProvider",
]
