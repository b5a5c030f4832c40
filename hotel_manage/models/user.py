"""
用户 ORM 模型 — 凭证持有者，隶属于唯一的 Customer
"""
from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from hotel_manage.database import Base


class AppUser(Base):
    """用户表（password 列保存 bcrypt 哈希）"""
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(
        Integer,
        ForeignKey("customers.customer_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    username = Column(String(150), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(150), nullable=False)
    last_name = Column(String(150), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    customer = relationship("Customer", back_populates="users")
    roles = relationship(
        "AppRole",
        secondary="_userRole",
        back_populates="users",
    )

    def __repr__(self):
        return f"<AppUser {self.username}>"
