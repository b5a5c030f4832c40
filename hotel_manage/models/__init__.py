"""
ORM 模型注册 — 导入即向 Base.metadata 注册所有表
"""
from hotel_manage.models.customer import Customer
from hotel_manage.models.user import AppUser
from hotel_manage.models.rbac import AppPermission, AppRole, role_permission, user_role

__all__ = [
    "Customer",
    "AppUser",
    "AppRole",
    "AppPermission",
    "user_role",
    "role_permission",
]
