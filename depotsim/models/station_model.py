"""
处理站模型
定义处理站实体及其预约/占用状态
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from depotsim.models.enums import StationState
from depotsim.models.traveler_model import Point


@dataclass
class ProcessingStation:
    """
    处理站模型

    同一时刻最多一个旅行者处于 claimed 或 active 状态

    Attributes:
        id: 处理站ID（如 S1）
        x: X坐标
        y: Y坐标
        state: 当前状态
        claimed_by: 预约者ID
        current_occupant: 正在处理的旅行者ID
        queue: 等待队列（仅负载感知策略使用）
        boxes_processed: 累计处理箱子数
    """

    id: str
    x: float
    y: float
    state: StationState = field(default=StationState.AVAILABLE)
    claimed_by: Optional[int] = field(default=None)
    current_occupant: Optional[int] = field(default=None)
    queue: Deque[int] = field(default_factory=deque)
    boxes_processed: int = field(default=0)

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)

    @property
    def is_available(self) -> bool:
        return self.state == StationState.AVAILABLE

    @property
    def holder(self) -> Optional[int]:
        """当前持有者（预约者或处理者）"""
        if self.state == StationState.ACTIVE:
            return self.current_occupant
        if self.state == StationState.CLAIMED:
            return self.claimed_by
        return None

    def reset(self):
        """
        重置处理站状态（用于新仿真）
        """
        self.state = StationState.AVAILABLE
        self.claimed_by = None
        self.current_occupant = None
        self.queue.clear()
        self.boxes_processed = 0

    def to_dict(self) -> dict:
        """
        转换为字典

        Returns:
            属性字典
        """
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "state": self.state.value,
            "claimed_by": self.claimed_by,
            "current_occupant": self.current_occupant,
            "queue": list(self.queue),
            "boxes_processed": self.boxes_processed,
        }
