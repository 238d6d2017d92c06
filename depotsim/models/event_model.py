"""
事件模型
定义事件队列中的仿真事件，以及对外发布的通知

模型:
- SimEvent: 事件队列中的调度事件（不可变，只消费一次）
- Notification: 状态变化通知（供时间线/历史记录订阅）
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from depotsim.models.enums import EventType


@dataclass(frozen=True)
class SimEvent:
    """
    仿真事件

    Attributes:
        id: 事件ID（event-1, event-2, ...）
        time: 触发时间（虚拟时间）
        event_type: 事件类型
        entity_id: 关联的旅行者ID（SIMULATION_COMPLETE 为0）
        payload: 附加数据（如 station_id、segment）
    """

    id: str
    time: float
    event_type: EventType
    entity_id: int
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "time": self.time,
            "event_type": self.event_type.value,
            "entity_id": self.entity_id,
            "payload": dict(self.payload),
        }


@dataclass(frozen=True)
class Notification:
    """
    状态变化通知

    每次事件处理完成后发布，包含处理后的旅行者阶段

    Attributes:
        seq: 通知序号（全局递增）
        kind: 触发通知的事件类型
        traveler_id: 旅行者ID（仿真结束通知为0）
        time: 虚拟时间
        stage: 处理后的阶段（字符串形式）
        stage_kind: 阶段类型值
        station_id: 关联的处理站
        x: 坐标X
        y: 坐标Y
        has_box: 是否持有箱子
        switched: 是否为中途换站
    """

    seq: int
    kind: EventType
    traveler_id: int
    time: float
    stage: str = ""
    stage_kind: str = ""
    station_id: Optional[str] = None
    x: float = 0.0
    y: float = 0.0
    has_box: bool = False
    switched: bool = False

    def to_dict(self) -> dict:
        return {
            "seq": self.seq,
            "kind": self.kind.value,
            "traveler_id": self.traveler_id,
            "time": self.time,
            "stage": self.stage,
            "stage_kind": self.stage_kind,
            "station_id": self.station_id,
            "x": self.x,
            "y": self.y,
            "has_box": self.has_box,
            "switched": self.switched,
        }
