"""
租户（Customer）ORM 模型
名称、编码、税号在 upper() 下全局唯一（函数索引）
"""
from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, Index, Integer, String, func
from sqlalchemy.orm import relationship

from hotel_manage.database import Base


class Customer(Base):
    """租户表"""
    __tablename__ = "customers"

    customer_id = Column(Integer, primary_key=True, autoincrement=True)
    customer_name = Column(String(250), nullable=False)
    customer_code = Column(String(10), nullable=False)
    customer_type_id = Column(Integer, nullable=False, index=True)
    fiscal_number = Column(String(100), nullable=True)
    record_version = Column(Integer, nullable=False, default=1)
    creation_date = Column(DateTime, nullable=False, default=lambda: datetime.now(UTC))
    creation_user = Column(String(150), nullable=False)
    last_update_date = Column(DateTime, nullable=True)
    last_update_user = Column(String(150), nullable=True)
    last_update_process = Column(String(250), nullable=False)

    users = relationship(
        "AppUser",
        back_populates="customer",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("customers_uk1", func.upper(customer_name), unique=True),
        Index("customers_uk2", func.upper(customer_code), unique=True),
        Index("customers_uk3", func.upper(fiscal_number), unique=True),
    )

    def __repr__(self):
        return f"<Customer {self.customer_code}>"
