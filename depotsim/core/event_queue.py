"""
事件队列
基于 SimPy 事件日历的时间有序事件队列

功能:
- 按绝对虚拟时间调度事件（当前时间 + 延迟）
- 按时间弹出到期事件（每次一个，只消费一次）
- 同一时刻的事件按插入顺序先进先出

设计要点:
- 每个调度事件是一个 simpy.Timeout，SimPy 的堆按 (时间, 优先级, 序号) 排序，
  同时刻事件天然保持插入顺序
- 不使用 env.run()，而是由 pop_due 逐个 env.step()，
  调用方可以在两次弹出之间调度新事件
- 队列自身维护当前虚拟时间（时钟步推进），SimPy 时间只推进到最近处理的事件
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, Optional

import simpy
from simpy.core import Infinity

from depotsim.models.enums import EventType
from depotsim.models.event_model import SimEvent


logger = logging.getLogger(__name__)

# 浮点误差容忍
_TIME_EPSILON = 1e-9


class EventQueue:
    """
    事件队列

    Attributes:
        env: SimPy环境（事件日历）
        current_time: 当前虚拟时间
    """

    def __init__(self):
        self.env = simpy.Environment()
        self.current_time = 0.0
        self._next_id = 0
        self._pending = 0
        self._fired: Deque[SimEvent] = deque()

    def schedule(
        self,
        delay: float,
        event_type: EventType,
        entity_id: int,
        payload: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        调度事件

        Args:
            delay: 相对当前虚拟时间的延迟（负数按0处理）
            event_type: 事件类型
            entity_id: 关联实体ID
            payload: 附加数据

        Returns:
            事件ID
        """
        if delay < 0:
            logger.warning(
                "事件 %s 的延迟为负数 (%.3f)，按0处理", event_type.value, delay
            )
            delay = 0.0

        self._next_id += 1
        event = SimEvent(
            id=f"event-{self._next_id}",
            time=self.current_time + delay,
            event_type=event_type,
            entity_id=entity_id,
            payload=dict(payload or {}),
        )

        timeout = simpy.Timeout(
            self.env,
            max(0.0, event.time - self.env.now),
            value=event,
        )
        timeout.callbacks.append(self._on_fired)
        self._pending += 1

        logger.debug(
            "调度事件 %s %s(entity=%s) @ %.1f",
            event.id, event_type.value, entity_id, event.time,
        )
        return event.id

    def _on_fired(self, timeout: simpy.Timeout):
        self._fired.append(timeout.value)

    def pop_due(self, current_time: Optional[float] = None) -> Optional[SimEvent]:
        """
        弹出最早的到期事件

        Args:
            current_time: 当前虚拟时间（为空则使用队列自身时间）

        Returns:
            到期事件，没有则返回None
        """
        if current_time is not None:
            self.advance_to(current_time)

        if not self._fired:
            next_time = self.env.peek()
            if next_time > self.current_time + _TIME_EPSILON:
                return None
            self.env.step()

        if not self._fired:
            return None

        self._pending -= 1
        return self._fired.popleft()

    def peek_time(self) -> Optional[float]:
        """
        查看下一个事件的时间

        Returns:
            下一个事件时间，队列为空则返回None
        """
        if self._fired:
            return self._fired[0].time
        next_time = self.env.peek()
        if next_time == Infinity:
            return None
        return next_time

    def advance_to(self, time: float):
        """
        推进当前虚拟时间（只增不减）

        Args:
            time: 目标时间
        """
        if time < self.current_time:
            logger.debug("忽略时间回退: %.3f < %.3f", time, self.current_time)
            return
        self.current_time = time

    def clear(self):
        """
        清空队列并将时间归零（用于重置）
        """
        self.env = simpy.Environment()
        self.current_time = 0.0
        self._next_id = 0
        self._pending = 0
        self._fired.clear()

    def is_empty(self) -> bool:
        return self._pending == 0

    def __len__(self) -> int:
        return self._pending
