"""
RBACPermissionProvider — IPermissionProvider 的服务层实现

权限解析是 User → Role → Permission 的两段可达性：
    permissions_of_user(u) = ⋃ { permissions_of_role(r) : r ∈ roles_of_user(u) }

未知或非法 user_id 视为空权限集（fail-closed），不抛异常。
默认不缓存；cache_enabled=True 时订阅 RBAC 事件失效缓存，
并用代次计数保证失效前发起的查询结果不会写回缓存。
"""
import logging
import threading
from typing import Any, Callable, Dict, FrozenSet, Optional, Set

from sqlalchemy.orm import Session

from hotel_manage.core.security.permission import IPermissionProvider
from hotel_manage.exceptions import NotFoundError
from hotel_manage.models.schemas import PermissionRead, RoleRead
from hotel_manage.services.event_bus import (
    ROLE_PERMISSION_GRANTED,
    ROLE_PERMISSION_REVOKED,
    USER_ROLE_ASSIGNED,
    USER_ROLE_REVOKED,
    Event,
    EventBus,
)
from hotel_manage.services.rbac_service import RoleService

logger = logging.getLogger(__name__)

# 32 位 INTEGER 主键范围
USER_ID_MIN = -(2 ** 31)
USER_ID_MAX = 2 ** 31 - 1


class RBACPermissionProvider(IPermissionProvider):
    """基于数据库的 RBAC 权限提供者"""

    def __init__(
        self,
        db_session_factory: Callable[[], Session],
        event_bus: Optional[EventBus] = None,
        cache_enabled: bool = False,
    ):
        """
        Args:
            db_session_factory: callable that returns a new DB session
            event_bus: RBAC 变更事件来源（启用缓存时必须与服务层共用）
            cache_enabled: 是否缓存每个用户的角色与权限集合
        """
        self._db_session_factory = db_session_factory
        self._cache_enabled = cache_enabled
        self._permission_cache: Dict[int, FrozenSet[PermissionRead]] = {}
        self._role_cache: Dict[int, FrozenSet[RoleRead]] = {}
        self._cache_lock = threading.Lock()
        self._generation = 0

        if cache_enabled:
            if event_bus is None:
                raise ValueError("启用权限缓存时必须提供 event_bus，否则缓存无法失效")
            event_bus.subscribe(USER_ROLE_ASSIGNED, self._on_user_role_changed)
            event_bus.subscribe(USER_ROLE_REVOKED, self._on_user_role_changed)
            event_bus.subscribe(ROLE_PERMISSION_GRANTED, self._on_role_permission_changed)
            event_bus.subscribe(ROLE_PERMISSION_REVOKED, self._on_role_permission_changed)

    @staticmethod
    def _normalize_user_id(user_id: Any) -> Optional[int]:
        """只接受 int 或十进制数字串，且在 user_id 列 (INTEGER) 的取值范围内"""
        if isinstance(user_id, bool):
            return None
        if isinstance(user_id, int):
            uid = user_id
        elif isinstance(user_id, str) and user_id.isascii() and user_id.isdigit():
            uid = int(user_id)
        else:
            return None
        if not USER_ID_MIN <= uid <= USER_ID_MAX:
            return None
        return uid

    # ===== 查询 =====

    def _load_roles(self, user_id: int) -> Set[RoleRead]:
        db = self._db_session_factory()
        try:
            return RoleService(db).roles_of_user(user_id)
        except NotFoundError:
            return set()
        finally:
            db.close()

    def _load_permissions(self, user_id: int) -> Set[PermissionRead]:
        db = self._db_session_factory()
        try:
            svc = RoleService(db)
            try:
                roles = svc.roles_of_user(user_id)
            except NotFoundError:
                return set()
            permissions: Set[PermissionRead] = set()
            for role in roles:
                permissions |= svc.permissions_of_role(role.id)
            return permissions
        finally:
            db.close()

    def _cached(self, cache: Dict[int, FrozenSet], user_id: int, loader: Callable[[int], Set]) -> Set:
        if not self._cache_enabled:
            return loader(user_id)

        with self._cache_lock:
            hit = cache.get(user_id)
            generation = self._generation
        if hit is not None:
            return set(hit)

        result = loader(user_id)
        with self._cache_lock:
            if generation == self._generation:
                cache[user_id] = frozenset(result)
        return result

    def roles_of_user(self, user_id: Any) -> Set[RoleRead]:
        uid = self._normalize_user_id(user_id)
        if uid is None:
            return set()
        return self._cached(self._role_cache, uid, self._load_roles)

    def permissions_of_user(self, user_id: Any) -> Set[PermissionRead]:
        uid = self._normalize_user_id(user_id)
        if uid is None:
            return set()
        return self._cached(self._permission_cache, uid, self._load_permissions)

    def has_permission(self, user_id: Any, permission_name: str) -> bool:
        granted = super().has_permission(user_id, permission_name)
        logger.debug(f"Permission check user={user_id!r} permission={permission_name!r} granted={granted}")
        return granted

    # ===== 缓存失效 =====

    def invalidate_user(self, user_id: Any) -> None:
        """Invalidate cache for a specific user (call after role/permission change)"""
        uid = self._normalize_user_id(user_id)
        with self._cache_lock:
            self._generation += 1
            self._permission_cache.pop(uid, None)
            self._role_cache.pop(uid, None)

    def invalidate_all(self) -> None:
        """Invalidate all caches (call after bulk role/permission changes)"""
        with self._cache_lock:
            self._generation += 1
            self._permission_cache.clear()
            self._role_cache.clear()

    def _on_user_role_changed(self, event: Event) -> None:
        self.invalidate_user(event.data.get("user_id"))

    def _on_role_permission_changed(self, event: Event) -> None:
        # 缓存不记录角色到用户的反向映射，全部失效
        self.invalidate_all()
