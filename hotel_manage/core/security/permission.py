"""
core/security/permission.py — 权限提供者接口

定义 IPermissionProvider 抽象接口，服务层实现此接口提供动态 RBAC 判定。
请求路由层只依赖此接口，不关心存储。
"""
from abc import ABC, abstractmethod
from typing import Any, Iterable, Set, Union

from hotel_manage.models.schemas import PermissionRead, RoleRead


def _as_name_set(role_names: Union[str, Iterable[str]]) -> Set[str]:
    # 单个字符串视为一个角色名
    if isinstance(role_names, str):
        return {role_names}
    return set(role_names)


class IPermissionProvider(ABC):
    """权限提供者接口"""

    @abstractmethod
    def permissions_of_user(self, user_id: Any) -> Set[PermissionRead]:
        """用户经由所有角色可达的权限集合"""

    @abstractmethod
    def roles_of_user(self, user_id: Any) -> Set[RoleRead]:
        """用户持有的角色集合"""

    def has_permission(self, user_id: Any, permission_name: str) -> bool:
        """检查用户是否拥有指定权限名（区分大小写）"""
        return any(p.permission_name == permission_name for p in self.permissions_of_user(user_id))

    def has_any_role(self, user_id: Any, role_names: Union[str, Iterable[str]]) -> bool:
        wanted = _as_name_set(role_names)
        if not wanted:
            return False
        return not wanted.isdisjoint(r.role_name for r in self.roles_of_user(user_id))

    def has_all_roles(self, user_id: Any, role_names: Union[str, Iterable[str]]) -> bool:
        wanted = _as_name_set(role_names)
        if not wanted:
            return True
        return wanted.issubset(r.role_name for r in self.roles_of_user(user_id))


__all__ = ["IPermissionProvider"]
