"""
事件总线 - 内存级发布/订阅模式
RBAC 变更通过事件通知授权缓存失效；实例由调用方显式构造并注入
"""
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Callable, Dict, List, Optional
import logging
import threading
import uuid

from hotel_manage.logging_config import LogCategory, get_category_logger

logger = logging.getLogger(__name__)
events_logger = get_category_logger(LogCategory.EVENTS)

# RBAC 事件类型
USER_ROLE_ASSIGNED = "rbac.user_role_assigned"
USER_ROLE_REVOKED = "rbac.user_role_revoked"
ROLE_PERMISSION_GRANTED = "rbac.role_permission_granted"
ROLE_PERMISSION_REVOKED = "rbac.role_permission_revoked"


@dataclass
class Event:
    """事件基类"""
    event_type: str
    data: Dict[str, Any]
    source: str  # 触发来源（服务名）
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)


class EventBus:
    """
    内存级事件总线（线程安全）

    使用方式：
    1. 订阅事件：bus.subscribe(USER_ROLE_ASSIGNED, handler_func)
    2. 发布事件：bus.publish(Event(...))
    3. 取消订阅：bus.unsubscribe(USER_ROLE_ASSIGNED, handler_func)
    """

    def __init__(self, history_size: int = 100):
        self._subscribers: Dict[str, List[Callable[[Event], None]]] = {}
        self._event_history: deque = deque(maxlen=history_size)
        self._subscriber_lock = threading.Lock()

    def subscribe(self, event_type: str, handler: Callable[[Event], None]) -> None:
        with self._subscriber_lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.debug(f"Handler {getattr(handler, '__name__', handler)} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable[[Event], None]) -> None:
        with self._subscriber_lock:
            if handler in self._subscribers.get(event_type, []):
                self._subscribers[event_type].remove(handler)

    def publish(self, event: Event) -> None:
        """
        发布事件（同步执行所有处理器）

        处理器异常不会影响其他处理器的执行
        """
        self._event_history.append(event)
        events_logger.info(f"{event.event_type} {event.data}")

        with self._subscriber_lock:
            handlers = list(self._subscribers.get(event.event_type, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler {getattr(handler, '__name__', handler)} error for {event.event_type}: {e}",
                    exc_info=True,
                )

    def get_history(self, event_type: Optional[str] = None, limit: int = 50) -> List[Event]:
        """事件历史（最新的在前）"""
        history = list(self._event_history)
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return list(reversed(history))[:limit]

    def clear_subscribers(self) -> None:
        with self._subscriber_lock:
            self._subscribers.clear()

    def clear_history(self) -> None:
        self._event_history.clear()
