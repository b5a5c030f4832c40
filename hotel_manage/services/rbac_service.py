"""
RBAC Service — 角色/权限图

角色与权限为共享资源，只能通过此处的 create / assign / revoke 修改映射表。
assign / grant / revoke 对映射行幂等：重复分配或撤销未持有的映射不报错。
查询不做缓存，每次反映最新已提交状态。
"""
from typing import Any, List, Optional, Set

from sqlalchemy import Table, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hotel_manage.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from hotel_manage.logging_config import LogCategory, get_category_logger
from hotel_manage.models.rbac import AppPermission, AppRole, role_permission, user_role
from hotel_manage.models.schemas import PermissionRead, RoleRead
from hotel_manage.models.user import AppUser
from hotel_manage.services.event_bus import (
    ROLE_PERMISSION_GRANTED,
    ROLE_PERMISSION_REVOKED,
    USER_ROLE_ASSIGNED,
    USER_ROLE_REVOKED,
    Event,
    EventBus,
)

actions_logger = get_category_logger(LogCategory.ACTIONS)


def _outcome(changed: bool) -> str:
    return "applied" if changed else "no-op"


def _require_name(name: Optional[str], label: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{label}不能为空", {"field": label})
    return name


class _GraphService:
    """映射表的幂等增删"""

    source = "rbac_service"

    def __init__(self, db: Session, event_bus: Optional[EventBus] = None):
        self.db = db
        self.event_bus = event_bus

    def _get_or_404(self, model, entity: str, entity_id: Any):
        obj = self.db.get(model, entity_id)
        if obj is None:
            raise NotFoundError(entity, entity_id)
        return obj

    def _link_exists(self, table: Table, **keys: Any) -> bool:
        stmt = select(*table.c).where(*(table.c[k] == v for k, v in keys.items()))
        return self.db.execute(stmt).first() is not None

    def _link(self, table: Table, **keys: Any) -> bool:
        """插入映射行；已存在返回 False"""
        if self._link_exists(table, **keys):
            return False
        try:
            self.db.execute(table.insert().values(**keys))
            self.db.commit()
        except IntegrityError:
            # 并发插入同一映射时收敛为 no-op
            self.db.rollback()
            if self._link_exists(table, **keys):
                return False
            raise
        return True

    def _unlink(self, table: Table, **keys: Any) -> bool:
        """删除映射行；不存在返回 False"""
        result = self.db.execute(
            table.delete().where(*(table.c[k] == v for k, v in keys.items()))
        )
        self.db.commit()
        return result.rowcount > 0

    def _publish(self, event_type: str, **data: Any) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(Event(event_type=event_type, data=data, source=self.source))


class RoleService(_GraphService):
    """角色管理服务（含用户-角色、角色-权限映射）"""

    def create_role(self, name: str, description: Optional[str] = None) -> RoleRead:
        name = _require_name(name, "角色名")
        if self.db.query(AppRole.id).filter(AppRole.role_name == name).first() is not None:
            raise DuplicateKeyError(f"角色 '{name}' 已存在", fields=["roleName"])

        role = AppRole(role_name=name, description=description)
        self.db.add(role)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateKeyError(f"角色 '{name}' 已存在", fields=["roleName"]) from e
        self.db.refresh(role)

        actions_logger.info(f"Role {role.id} ({role.role_name}) created")
        return RoleRead.model_validate(role)

    def get_role(self, role_id: Any) -> RoleRead:
        return RoleRead.model_validate(self._get_or_404(AppRole, "Role", role_id))

    def get_role_by_name(self, name: str) -> Optional[RoleRead]:
        role = self.db.query(AppRole).filter(AppRole.role_name == name).first()
        return RoleRead.model_validate(role) if role else None

    def list_roles(self) -> List[RoleRead]:
        return [RoleRead.model_validate(r) for r in self.db.query(AppRole).order_by(AppRole.id).all()]

    # ===== User-Role Operations =====

    def assign_role_to_user(self, user_id: Any, role_id: Any) -> bool:
        """为用户分配角色；返回是否产生了变更"""
        self._get_or_404(AppUser, "User", user_id)
        self._get_or_404(AppRole, "Role", role_id)

        changed = self._link(user_role, user_id=user_id, role_id=role_id)
        actions_logger.info(f"Assign role {role_id} to user {user_id} ({_outcome(changed)})")
        if changed:
            self._publish(USER_ROLE_ASSIGNED, user_id=user_id, role_id=role_id)
        return changed

    def revoke_role_from_user(self, user_id: Any, role_id: Any) -> bool:
        self._get_or_404(AppUser, "User", user_id)
        self._get_or_404(AppRole, "Role", role_id)

        changed = self._unlink(user_role, user_id=user_id, role_id=role_id)
        actions_logger.info(f"Revoke role {role_id} from user {user_id} ({_outcome(changed)})")
        if changed:
            self._publish(USER_ROLE_REVOKED, user_id=user_id, role_id=role_id)
        return changed

    def roles_of_user(self, user_id: Any) -> Set[RoleRead]:
        self._get_or_404(AppUser, "User", user_id)
        stmt = (
            select(AppRole)
            .join(user_role, user_role.c.role_id == AppRole.id)
            .where(user_role.c.user_id == user_id)
        )
        return {RoleRead.model_validate(r) for r in self.db.execute(stmt).scalars()}

    def users_with_role(self, role_id: Any) -> Set[int]:
        self._get_or_404(AppRole, "Role", role_id)
        stmt = select(user_role.c.user_id).where(user_role.c.role_id == role_id)
        return set(self.db.execute(stmt).scalars())

    # ===== Role-Permission Operations =====

    def grant_permission_to_role(self, role_id: Any, permission_id: Any) -> bool:
        self._get_or_404(AppRole, "Role", role_id)
        self._get_or_404(AppPermission, "Permission", permission_id)

        changed = self._link(role_permission, role_id=role_id, permission_id=permission_id)
        actions_logger.info(f"Grant permission {permission_id} to role {role_id} ({_outcome(changed)})")
        if changed:
            self._publish(ROLE_PERMISSION_GRANTED, role_id=role_id, permission_id=permission_id)
        return changed

    def revoke_permission_from_role(self, role_id: Any, permission_id: Any) -> bool:
        self._get_or_404(AppRole, "Role", role_id)
        self._get_or_404(AppPermission, "Permission", permission_id)

        changed = self._unlink(role_permission, role_id=role_id, permission_id=permission_id)
        actions_logger.info(f"Revoke permission {permission_id} from role {role_id} ({_outcome(changed)})")
        if changed:
            self._publish(ROLE_PERMISSION_REVOKED, role_id=role_id, permission_id=permission_id)
        return changed

    def permissions_of_role(self, role_id: Any) -> Set[PermissionRead]:
        self._get_or_404(AppRole, "Role", role_id)
        stmt = (
            select(AppPermission)
            .join(role_permission, role_permission.c.permission_id == AppPermission.id)
            .where(role_permission.c.role_id == role_id)
        )
        return {PermissionRead.model_validate(p) for p in self.db.execute(stmt).scalars()}


class PermissionService(_GraphService):
    """权限管理服务"""

    def create_permission(self, name: str, end_point: Optional[str] = None,
                          description: Optional[str] = None) -> PermissionRead:
        name = _require_name(name, "权限名")
        if self.db.query(AppPermission.id).filter(AppPermission.permission_name == name).first() is not None:
            raise DuplicateKeyError(f"权限 '{name}' 已存在", fields=["permissionName"])

        perm = AppPermission(permission_name=name, end_point=end_point, description=description)
        self.db.add(perm)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateKeyError(f"权限 '{name}' 已存在", fields=["permissionName"]) from e
        self.db.refresh(perm)

        actions_logger.info(f"Permission {perm.id} ({perm.permission_name}) created")
        return PermissionRead.model_validate(perm)

    def get_permission(self, permission_id: Any) -> PermissionRead:
        return PermissionRead.model_validate(self._get_or_404(AppPermission, "Permission", permission_id))

    def get_permission_by_name(self, name: str) -> Optional[PermissionRead]:
        perm = self.db.query(AppPermission).filter(AppPermission.permission_name == name).first()
        return PermissionRead.model_validate(perm) if perm else None

    def list_permissions(self) -> List[PermissionRead]:
        rows = self.db.query(AppPermission).order_by(AppPermission.id).all()
        return [PermissionRead.model_validate(p) for p in rows]
