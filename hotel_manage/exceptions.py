"""
授权核心异常体系
每种失败保留其具体类型向上传播，由调用方（如 HTTP 层）映射为用户可见响应
"""
from typing import Any, Dict, Optional, Sequence


class HotelManageError(Exception):
    """所有核心异常的基类"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(HotelManageError):
    """输入缺失或格式错误"""


class DuplicateKeyError(HotelManageError):
    """唯一性约束冲突"""

    def __init__(self, message: str, fields: Sequence[str] = (), details: Optional[Dict[str, Any]] = None):
        self.fields = list(fields)
        super().__init__(message, details)


class StaleVersionError(HotelManageError):
    """乐观锁版本不匹配"""

    def __init__(self, message: str, expected: Optional[int] = None, actual: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message, {"expected": expected, "actual": actual})


class PasswordPolicyError(HotelManageError):
    """密码不满足复杂度策略"""


class CorruptCredentialError(HotelManageError):
    """存储的密码哈希无法解析"""


class NotFoundError(HotelManageError):
    """引用的实体不存在"""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id!r} 不存在", {"entity": entity, "id": entity_id})


__all__ = [
    "HotelManageError",
    "ValidationError",
    "DuplicateKeyError",
    "StaleVersionError",
    "PasswordPolicyError",
    "CorruptCredentialError",
    "NotFoundError",
]
