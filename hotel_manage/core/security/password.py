"""
core/security/password.py — 密码哈希与复杂度策略

哈希使用 bcrypt（加盐，单向），每次哈希结果不同；校验为常量时间比较。
"""
from typing import Any, Mapping, Optional

import bcrypt

from hotel_manage.config import DEFAULT_BCRYPT_ROUNDS, PasswordPolicy
from hotel_manage.exceptions import CorruptCredentialError

# bcrypt 只使用前 72 字节
BCRYPT_MAX_BYTES = 72


def _encode(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plain_password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """密码哈希"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode(plain_password), salt).decode("utf-8")


def check_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    验证密码

    Raises:
        CorruptCredentialError: 存储的哈希为空或无法解析
    """
    if not isinstance(hashed_password, str) or not hashed_password:
        raise CorruptCredentialError("存储的密码哈希为空")
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
    except ValueError as e:
        raise CorruptCredentialError(f"存储的密码哈希无法解析: {e}") from e


def as_password_policy(config: Any) -> PasswordPolicy:
    """将 Settings / PasswordPolicy / 映射统一为 PasswordPolicy"""
    if isinstance(config, PasswordPolicy):
        return config
    if isinstance(config, Mapping):
        return PasswordPolicy(
            active=bool(config.get("PasswordComplexityActive", False)),
            min_length=int(config.get("MinimumPasswordCharacters", 1)),
        )
    if hasattr(config, "password_policy"):
        return config.password_policy
    return PasswordPolicy(
        active=bool(getattr(config, "PasswordComplexityActive")),
        min_length=int(getattr(config, "MinimumPasswordCharacters")),
    )


def is_password_complex(password: str, config: Any) -> bool:
    """
    密码复杂度判定（纯函数）

    策略未启用时恒为 True；启用时要求长度不少于 MinimumPasswordCharacters，
    且满足策略中附加的全部规则。
    """
    policy = as_password_policy(config)
    if not policy.active:
        return True
    if password is None or len(password) < policy.min_length:
        return False
    return all(rule(password) for rule in policy.rules)


__all__ = [
    "hash_password",
    "check_password",
    "is_password_complex",
    "as_password_policy",
]
