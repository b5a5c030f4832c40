"""
RBAC ORM 模型 — 角色、权限、角色-权限映射、用户-角色映射
映射表不记录时间戳
"""
from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from hotel_manage.database import Base


user_role = Table(
    "_userRole",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("AppRole.id", ondelete="CASCADE"), primary_key=True),
)

role_permission = Table(
    "_rolePermission",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("AppRole.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("AppPermission.id", ondelete="CASCADE"), primary_key=True),
)


class AppRole(Base):
    """角色表"""
    __tablename__ = "AppRole"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_name = Column("roleName", String(200), unique=True, nullable=False)
    description = Column(String(500), nullable=True)
    created_at = Column("createdAt", DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column("updatedAt", DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    users = relationship("AppUser", secondary=user_role, back_populates="roles")
    permissions = relationship(
        "AppPermission",
        secondary=role_permission,
        back_populates="roles",
    )


class AppPermission(Base):
    """权限表（end_point 为其守护的资源/动作）"""
    __tablename__ = "AppPermission"

    id = Column(Integer, primary_key=True, autoincrement=True)
    permission_name = Column("permissionName", String(200), unique=True, nullable=False)
    end_point = Column("endPoint", String(200), nullable=True)
    description = Column(String(500), nullable=True)
    created_at = Column("createdAt", DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column("updatedAt", DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    roles = relationship("AppRole", secondary=role_permission, back_populates="permissions")
