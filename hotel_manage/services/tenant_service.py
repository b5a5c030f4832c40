"""
租户目录服务 — Customer 的创建、查询、乐观锁更新

customer_name / customer_code / fiscal_number 在 upper() 下唯一：
先做应用层预检查给出明确的 DuplicateKeyError，数据库函数索引兜底。
"""
from datetime import datetime, UTC
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hotel_manage.config import Settings, get_settings
from hotel_manage.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    StaleVersionError,
    ValidationError,
)
from hotel_manage.logging_config import LogCategory, get_category_logger
from hotel_manage.models.customer import Customer
from hotel_manage.models.schemas import CustomerCreate, CustomerRead, CustomerUpdate, UserPublic
from hotel_manage.models.user import AppUser

actions_logger = get_category_logger(LogCategory.ACTIONS)

_UNIQUE_FIELDS = ("customer_name", "customer_code", "fiscal_number")
_REQUIRED_FIELDS = ("customer_name", "customer_code", "customer_type_id")


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        return None
    return value


class TenantService:
    """租户目录服务"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def _get_row(self, customer_id: Any) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    def _ensure_unique(self, values: Mapping[str, Optional[str]], exclude_id: Optional[int] = None) -> None:
        """大小写不敏感的唯一性预检查"""
        conflicts = []
        for field_name in _UNIQUE_FIELDS:
            value = values.get(field_name)
            if value is None:
                continue
            column = getattr(Customer, field_name)
            q = self.db.query(Customer.customer_id).filter(func.upper(column) == func.upper(value))
            if exclude_id is not None:
                q = q.filter(Customer.customer_id != exclude_id)
            if q.first() is not None:
                conflicts.append(field_name)
        if conflicts:
            raise DuplicateKeyError(f"客户字段重复: {', '.join(conflicts)}", fields=conflicts)

    def create_customer(
        self,
        name: str,
        code: str,
        type_id: int,
        fiscal_number: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> CustomerRead:
        """
        创建客户（record_version 从 1 开始）

        Raises:
            ValidationError: 名称/编码缺失或超长
            DuplicateKeyError: 名称、编码或税号（忽略大小写）已存在
        """
        try:
            data = CustomerCreate(
                customer_name=name,
                customer_code=code,
                customer_type_id=type_id,
                fiscal_number=_blank_to_none(fiscal_number),
            )
        except PydanticValidationError as e:
            raise ValidationError("客户数据无效", {"errors": e.errors(include_url=False)}) from e

        self._ensure_unique(data.model_dump())

        customer = Customer(
            **data.model_dump(),
            record_version=1,
            creation_date=datetime.now(UTC),
            creation_user=actor or self.settings.API_USER,
            last_update_process=self.settings.API_PROCESS,
        )
        self.db.add(customer)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateKeyError("客户字段重复", fields=list(_UNIQUE_FIELDS)) from e
        self.db.refresh(customer)

        actions_logger.info(
            f"Customer {customer.customer_id} ({customer.customer_code}) created by {customer.creation_user}"
        )
        return CustomerRead.model_validate(customer)

    def get_customer(self, customer_id: Any) -> CustomerRead:
        return CustomerRead.model_validate(self._get_row(customer_id))

    def list_customers(self) -> List[CustomerRead]:
        rows = self.db.query(Customer).order_by(Customer.customer_id).all()
        return [CustomerRead.model_validate(c) for c in rows]

    def list_users_for_customer(self, customer_id: Any) -> List[UserPublic]:
        """客户下的全部用户（每次调用都重新查询）"""
        self._get_row(customer_id)
        rows = (
            self.db.query(AppUser)
            .filter(AppUser.customer_id == customer_id)
            .order_by(AppUser.user_id)
            .all()
        )
        return [UserPublic.model_validate(u) for u in rows]

    def update_customer(
        self,
        customer_id: Any,
        patch: Union[CustomerUpdate, Mapping[str, Any]],
        expected_version: Optional[int] = None,
        actor: Optional[str] = None,
    ) -> CustomerRead:
        """
        更新客户并递增 record_version

        版本比较与递增在同一条 UPDATE 中完成（compare-and-increment）。

        Raises:
            NotFoundError: customer_id 不存在
            StaleVersionError: expected_version 与当前版本不一致
            DuplicateKeyError: 更新后的唯一字段与其他客户冲突
            ValidationError: patch 无效
        """
        if not isinstance(patch, CustomerUpdate):
            try:
                patch = CustomerUpdate(**dict(patch or {}))
            except (PydanticValidationError, TypeError) as e:
                details = {"errors": e.errors(include_url=False)} if isinstance(e, PydanticValidationError) else {}
                raise ValidationError("客户更新数据无效", details) from e

        values: Dict[str, Any] = patch.model_dump(exclude_unset=True)
        for field_name in _REQUIRED_FIELDS:
            if field_name in values and values[field_name] is None:
                raise ValidationError(f"{field_name} 不能为空", {"field": field_name})
        if "fiscal_number" in values:
            values["fiscal_number"] = _blank_to_none(values["fiscal_number"])

        current = self._get_row(customer_id)
        if expected_version is not None and current.record_version != expected_version:
            raise StaleVersionError(
                f"客户 {customer_id} 版本已变更",
                expected=expected_version, actual=current.record_version,
            )
        self._ensure_unique(values, exclude_id=current.customer_id)

        stmt = update(Customer).where(Customer.customer_id == current.customer_id)
        if expected_version is not None:
            stmt = stmt.where(Customer.record_version == expected_version)
        stmt = stmt.values(
            **values,
            record_version=Customer.record_version + 1,
            last_update_date=datetime.now(UTC),
            last_update_user=actor or self.settings.API_USER,
            last_update_process=self.settings.API_PROCESS,
        ).execution_options(synchronize_session=False)

        try:
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                self._raise_lost_update(current.customer_id, expected_version)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateKeyError("客户字段重复", fields=[f for f in _UNIQUE_FIELDS if f in values]) from e

        self.db.expire_all()
        customer = self._get_row(current.customer_id)
        actions_logger.info(
            f"Customer {customer.customer_id} updated to version {customer.record_version} "
            f"by {customer.last_update_user}"
        )
        return CustomerRead.model_validate(customer)

    def _raise_lost_update(self, customer_id: int, expected_version: Optional[int]) -> None:
        latest = self.db.get(Customer, customer_id)
        if latest is None:
            raise NotFoundError("Customer", customer_id)
        raise StaleVersionError(
            f"客户 {customer_id} 版本已变更",
            expected=expected_version, actual=latest.record_version,
        )
