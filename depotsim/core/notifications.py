"""
通知总线
引擎内每次状态变化都会发布一条类型化通知

订阅方式:
- 回调: bus.subscribe(callback)，发布时按订阅顺序同步调用
- 通道: sub = bus.open_channel()，通知缓存在通道中，由 sub.drain() 按顺序取出

设计要点:
- 通知按发布顺序编号，所有订阅者看到的顺序一致
- 回调异常记录日志后继续分发，不影响仿真
"""

import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from depotsim.models.event_model import Notification


logger = logging.getLogger(__name__)

NotificationHandler = Callable[[Notification], None]


class Subscription:
    """
    缓冲通道订阅

    Attributes:
        maxlen: 缓冲上限（超出时丢弃最旧的通知，None为不限）
    """

    def __init__(self, bus: "NotificationBus", maxlen: Optional[int] = None):
        self._bus = bus
        self._buffer: Deque[Notification] = deque(maxlen=maxlen)
        self.closed = False

    def push(self, notification: Notification):
        if not self.closed:
            self._buffer.append(notification)

    def drain(self) -> List[Notification]:
        """
        取出所有缓存的通知

        Returns:
            按发布顺序排列的通知列表
        """
        items = list(self._buffer)
        self._buffer.clear()
        return items

    def close(self):
        self.closed = True
        self._buffer.clear()
        self._bus.unsubscribe(self.push)

    def __len__(self) -> int:
        return len(self._buffer)


class NotificationBus:
    """
    通知总线
    """

    def __init__(self):
        self._handlers: List[NotificationHandler] = []
        self._seq = 0
        self.published = 0

    def next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def subscribe(self, handler: NotificationHandler):
        """
        注册回调

        Args:
            handler: 接收通知的回调
        """
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: NotificationHandler):
        if handler in self._handlers:
            self._handlers.remove(handler)

    def open_channel(self, maxlen: Optional[int] = None) -> Subscription:
        """
        打开一个缓冲通道

        Args:
            maxlen: 缓冲上限

        Returns:
            订阅对象
        """
        subscription = Subscription(self, maxlen=maxlen)
        self.subscribe(subscription.push)
        return subscription

    def publish(self, notification: Notification):
        """
        发布通知

        Args:
            notification: 通知
        """
        self.published += 1
        for handler in list(self._handlers):
            try:
                handler(notification)
            except Exception:
                logger.exception(
                    "通知处理失败: %s (traveler=%s)",
                    notification.kind.value, notification.traveler_id,
                )

    def reset_sequence(self):
        self._seq = 0
        self.published = 0
