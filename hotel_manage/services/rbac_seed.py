"""
RBAC 种子数据 — 初始化角色、权限、角色-权限映射

目录结构（YAML 或 dict）:
    roles:        [{name, description}]
    permissions:  [{name, end_point, description}]
    role_permissions: {role_name: [permission_name, ...] | null}   # null = 全部权限
"""
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from sqlalchemy.orm import Session

from hotel_manage.exceptions import ValidationError
from hotel_manage.logging_config import LogCategory, get_category_logger
from hotel_manage.services.event_bus import EventBus
from hotel_manage.services.rbac_service import PermissionService, RoleService

actions_logger = get_category_logger(LogCategory.ACTIONS)


# ========== Default Catalogue ==========

DEFAULT_CATALOGUE: Dict[str, Any] = {
    "roles": [
        {"name": "SysAdmin", "description": "拥有所有权限"},
        {"name": "Manager", "description": "业务管理权限"},
        {"name": "Receptionist", "description": "前台操作权限"},
        {"name": "Housekeeping", "description": "客房清洁权限"},
    ],
    "permissions": [
        # Customer
        {"name": "customer:view", "end_point": "/api/customers", "description": "查看客户"},
        {"name": "customer:manage", "end_point": "/api/customers", "description": "管理客户"},
        # User
        {"name": "user:view", "end_point": "/api/users", "description": "查看用户"},
        {"name": "user:manage", "end_point": "/api/users", "description": "管理用户"},
        # Role
        {"name": "role:view", "end_point": "/api/roles", "description": "查看角色"},
        {"name": "role:manage", "end_point": "/api/roles", "description": "管理角色与权限"},
        # Room
        {"name": "room:view", "end_point": "/api/rooms", "description": "查看房间"},
        {"name": "room:update", "end_point": "/api/rooms", "description": "更新房间状态"},
        # Reservation
        {"name": "reservation:view", "end_point": "/api/reservations", "description": "查看预订"},
        {"name": "reservation:create", "end_point": "/api/reservations", "description": "创建预订"},
        {"name": "reservation:update", "end_point": "/api/reservations", "description": "修改/取消预订"},
        # Check-in/out
        {"name": "checkin:execute", "end_point": "/api/checkin", "description": "办理入住"},
        {"name": "checkout:execute", "end_point": "/api/checkout", "description": "办理退房"},
        # Billing
        {"name": "billing:view", "end_point": "/api/billing", "description": "查看账单"},
        {"name": "billing:manage", "end_point": "/api/billing", "description": "管理账单/退款"},
        # Task
        {"name": "task:view", "end_point": "/api/tasks", "description": "查看任务"},
        {"name": "task:complete", "end_point": "/api/tasks", "description": "完成任务"},
    ],
    "role_permissions": {
        "SysAdmin": None,
        "Manager": [
            "customer:view", "user:view", "user:manage", "role:view",
            "room:view", "room:update",
            "reservation:view", "reservation:create", "reservation:update",
            "checkin:execute", "checkout:execute",
            "billing:view", "billing:manage",
            "task:view", "task:complete",
        ],
        "Receptionist": [
            "room:view", "room:update",
            "reservation:view", "reservation:create", "reservation:update",
            "checkin:execute", "checkout:execute",
            "billing:view",
        ],
        "Housekeeping": [
            "room:view", "room:update",
            "task:view", "task:complete",
        ],
    },
}


def load_catalogue(path: Union[str, Path]) -> Dict[str, Any]:
    """从 YAML 文件读取角色/权限目录"""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"种子文件格式无效: {path}", {"path": str(path)})
    return data


def seed_rbac(
    db: Session,
    catalogue: Optional[Dict[str, Any]] = None,
    event_bus: Optional[EventBus] = None,
) -> Dict[str, int]:
    """Seed RBAC data through the role/permission services. Idempotent — skips existing records.

    Returns dict with counts of created items.
    """
    catalogue = DEFAULT_CATALOGUE if catalogue is None else catalogue
    stats = {"roles": 0, "permissions": 0, "mappings": 0}

    roles = RoleService(db, event_bus)
    permissions = PermissionService(db, event_bus)

    # 1. Roles
    role_ids: Dict[str, int] = {}
    for role_data in catalogue.get("roles") or []:
        role = roles.get_role_by_name(role_data["name"])
        if role is None:
            role = roles.create_role(role_data["name"], role_data.get("description"))
            stats["roles"] += 1
        role_ids[role.role_name] = role.id

    # 2. Permissions
    perm_ids: Dict[str, int] = {}
    for perm_data in catalogue.get("permissions") or []:
        perm = permissions.get_permission_by_name(perm_data["name"])
        if perm is None:
            perm = permissions.create_permission(
                perm_data["name"], perm_data.get("end_point"), perm_data.get("description"),
            )
            stats["permissions"] += 1
        perm_ids[perm.permission_name] = perm.id

    # 3. Role→Permission mappings
    for role_name, perm_names in (catalogue.get("role_permissions") or {}).items():
        if role_name not in role_ids:
            raise ValidationError(f"种子映射引用了未知角色 '{role_name}'", {"role": role_name})
        names = list(perm_ids) if perm_names is None else perm_names
        for perm_name in names:
            if perm_name not in perm_ids:
                raise ValidationError(f"种子映射引用了未知权限 '{perm_name}'", {"permission": perm_name})
            if roles.grant_permission_to_role(role_ids[role_name], perm_ids[perm_name]):
                stats["mappings"] += 1

    actions_logger.info(f"RBAC seed finished: {stats}")
    return stats
