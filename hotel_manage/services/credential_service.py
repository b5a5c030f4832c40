"""
凭证服务 — 用户创建、密码校验、密码变更

默认读取返回 UserPublic（不含密码）；只有 get_user_with_password 走提权路径返回哈希。
每次密码校验都写入 auth 类别日志；哈希损坏记为 ERROR 并继续向上抛出。
"""
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hotel_manage.config import Settings, get_settings
from hotel_manage.core.security.password import check_password, hash_password, is_password_complex
from hotel_manage.exceptions import (
    CorruptCredentialError,
    NotFoundError,
    PasswordPolicyError,
    ValidationError,
)
from hotel_manage.logging_config import LogCategory, get_category_logger
from hotel_manage.models.customer import Customer
from hotel_manage.models.schemas import UserCreate, UserCredentials, UserPublic
from hotel_manage.models.user import AppUser

auth_logger = get_category_logger(LogCategory.AUTH)
actions_logger = get_category_logger(LogCategory.ACTIONS)


class CredentialService:
    """凭证存储服务"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    # ===== 查询 =====

    def _get_row(self, user_id: Any) -> AppUser:
        user = self.db.get(AppUser, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def _get_row_by_username(self, username: str) -> Optional[AppUser]:
        return self.db.query(AppUser).filter(AppUser.username == username).first()

    def get_user(self, user_id: Any) -> UserPublic:
        return UserPublic.model_validate(self._get_row(user_id))

    def get_user_by_username(self, username: str) -> UserPublic:
        user = self._get_row_by_username(username)
        if user is None:
            raise NotFoundError("User", username)
        return UserPublic.model_validate(user)

    def get_user_with_password(self, user_id: Any) -> UserCredentials:
        """提权读取：返回含密码哈希的投影"""
        return UserCredentials.model_validate(self._get_row(user_id))

    # ===== 写入 =====

    def _check_policy(self, password: str) -> None:
        if not is_password_complex(password, self.settings):
            raise PasswordPolicyError(
                f"密码长度至少为 {self.settings.MinimumPasswordCharacters} 个字符",
                {"min_length": self.settings.MinimumPasswordCharacters},
            )

    def create_user(
        self,
        customer_id: Any,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> UserPublic:
        """
        创建用户（只存储哈希）

        Raises:
            ValidationError: 必填字段缺失或用户名已存在
            NotFoundError: customer_id 不存在
            PasswordPolicyError: 启用复杂度策略且密码不满足
        """
        try:
            data = UserCreate(
                customer_id=customer_id,
                username=username,
                password=password,
                first_name=first_name,
                last_name=last_name,
            )
        except PydanticValidationError as e:
            raise ValidationError("用户数据无效", {"errors": e.errors(include_url=False)}) from e

        if self.db.get(Customer, data.customer_id) is None:
            raise NotFoundError("Customer", data.customer_id)
        if self._get_row_by_username(data.username) is not None:
            raise ValidationError(f"用户名 '{data.username}' 已存在", {"field": "username"})
        self._check_policy(data.password)

        user = AppUser(
            customer_id=data.customer_id,
            username=data.username,
            password=hash_password(data.password, rounds=self.settings.BCRYPT_ROUNDS),
            first_name=data.first_name,
            last_name=data.last_name,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError(f"用户名 '{data.username}' 已存在", {"field": "username"}) from e
        self.db.refresh(user)

        actions_logger.info(f"User {user.user_id} created for customer {user.customer_id}")
        return UserPublic.model_validate(user)

    def update_user(self, user_id: Any, first_name: Optional[str] = None,
                    last_name: Optional[str] = None) -> UserPublic:
        user = self._get_row(user_id)
        for field_name, value in (("first_name", first_name), ("last_name", last_name)):
            if value is None:
                continue
            if not value.strip():
                raise ValidationError(f"{field_name} 不能为空", {"field": field_name})
            setattr(user, field_name, value)
        self.db.commit()
        self.db.refresh(user)
        actions_logger.info(f"User {user.user_id} updated")
        return UserPublic.model_validate(user)

    def change_password(self, user_id: Any, new_password: str) -> UserPublic:
        """修改密码（重新加盐哈希）"""
        if not isinstance(new_password, str) or not new_password:
            raise ValidationError("新密码不能为空", {"field": "password"})
        user = self._get_row(user_id)
        self._check_policy(new_password)

        user.password = hash_password(new_password, rounds=self.settings.BCRYPT_ROUNDS)
        self.db.commit()
        self.db.refresh(user)
        auth_logger.info(f"Password changed for user {user.user_id}")
        return UserPublic.model_validate(user)

    # ===== 校验 =====

    @staticmethod
    def _user_id_of(user: Any) -> Any:
        if hasattr(user, "user_id"):
            return user.user_id
        return user

    def verify_password(self, user: Any, plain_password: str) -> bool:
        """
        校验密码

        Args:
            user: 用户记录（UserPublic / UserCredentials）或 user_id

        Returns:
            匹配返回 True，不匹配返回 False

        Raises:
            CorruptCredentialError: 存储的哈希无法解析
            NotFoundError: 用户不存在
        """
        if isinstance(user, UserCredentials):
            credentials = user
        else:
            credentials = self.get_user_with_password(self._user_id_of(user))

        if not isinstance(plain_password, str):
            auth_logger.info(f"Password verification failed for user {credentials.user_id}")
            return False

        try:
            matched = check_password(plain_password, credentials.password)
        except CorruptCredentialError as e:
            auth_logger.error(
                f"Corrupt credential for user {credentials.user_id} ({credentials.username}): {e.message}"
            )
            raise

        outcome = "succeeded" if matched else "failed"
        auth_logger.info(f"Password verification {outcome} for user {credentials.user_id}")
        return matched

    def authenticate(self, username: str, password: str) -> Optional[UserPublic]:
        """用户名 + 密码登录；用户不存在或密码错误返回 None"""
        user = self._get_row_by_username(username) if isinstance(username, str) else None
        if user is None:
            auth_logger.warning(f"Login failed: unknown username {username!r}")
            return None

        credentials = UserCredentials.model_validate(user)
        if not self.verify_password(credentials, password):
            auth_logger.warning(f"Login failed for username {username!r}")
            return None

        auth_logger.info(f"Login succeeded for user {credentials.user_id}")
        return UserPublic.model_validate(user)
