"""
服务层 — 凭证、租户、角色/权限图与授权判定
"""
from hotel_manage.services.credential_service import CredentialService
from hotel_manage.services.event_bus import Event, EventBus
from hotel_manage.services.permission_provider import RBACPermissionProvider
from hotel_manage.services.rbac_service import PermissionService, RoleService
from hotel_manage.services.tenant_service import TenantService

__all__ = [
    "CredentialService",
    "TenantService",
    "RoleService",
    "PermissionService",
    "RBACPermissionProvider",
    "Event",
    "EventBus",
]
