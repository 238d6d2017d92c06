"""
旅行者模型
定义旅行者实体、阶段标签和行进路段

功能:
- Stage: 带处理站标签的阶段（替代字符串拼接的阶段名）
- Edge: 显式记录的行进路段（起点、终点、开始时间）
- Traveler: 旅行者状态
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

from depotsim.models.enums import (
    StageKind,
    STAGE_META,
    TRAVEL_STAGES,
    STATION_STAGES,
)


@dataclass(frozen=True)
class Point:
    """二维坐标点"""

    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        """
        计算欧氏距离

        Args:
            other: 另一个点

        Returns:
            距离
        """
        return math.hypot(other.x - self.x, other.y - self.y)

    def as_tuple(self) -> Tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class Stage:
    """
    旅行者阶段

    kind 为阶段类型，station_id 仅在与处理站相关的阶段中有值，
    例如 Stage(MOVING_TO_STATION, "S1")。

    Attributes:
        kind: 阶段类型
        station_id: 关联的处理站ID
    """

    kind: StageKind
    station_id: Optional[str] = None

    def __post_init__(self):
        if self.kind in STATION_STAGES and self.station_id is None:
            raise ValueError(f"阶段 {self.kind.value} 必须指定处理站")
        if self.kind not in STATION_STAGES and self.station_id is not None:
            raise ValueError(f"阶段 {self.kind.value} 不能关联处理站")

    @classmethod
    def idle(cls) -> "Stage":
        return cls(StageKind.IDLE)

    @classmethod
    def moving_to_station(cls, station_id: str) -> "Stage":
        return cls(StageKind.MOVING_TO_STATION, station_id)

    @classmethod
    def waiting_at_station(cls, station_id: str) -> "Stage":
        return cls(StageKind.WAITING_AT_STATION, station_id)

    @classmethod
    def processing_at_station(cls, station_id: str) -> "Stage":
        return cls(StageKind.PROCESSING_AT_STATION, station_id)

    @property
    def is_traveling(self) -> bool:
        """是否处于位移阶段"""
        return self.kind in TRAVEL_STAGES

    @property
    def label(self) -> str:
        """
        阶段的可读标签

        Returns:
            如 "Travel to S1"、"Collecting Box"
        """
        template = STAGE_META[self.kind]["label"]
        return template.format(station=self.station_id or "")

    @property
    def color(self) -> str:
        return STAGE_META[self.kind]["color"]

    def __str__(self) -> str:
        if self.station_id is not None:
            return f"{self.kind.value}({self.station_id})"
        return self.kind.value


@dataclass(frozen=True)
class Edge:
    """
    行进路段

    在调度行进事件时记录，插值时据此确定起终点，
    不再通过比较坐标反推来源位置。

    Attributes:
        from_ref: 起点位置ID（中途换站时为None，表示固定坐标）
        from_point: 出发时的起点坐标
        to_ref: 终点位置ID
        to_point: 出发时的终点坐标
        start_time: 出发时间（虚拟时间）
        seq: 路段序号（用于识别已被放弃的路段）
    """

    from_ref: Optional[str]
    from_point: Point
    to_ref: str
    to_point: Point
    start_time: float
    seq: int


@dataclass
class Traveler:
    """
    旅行者模型

    Attributes:
        id: 旅行者ID
        stage: 当前阶段
        location: 当前所在位置ID（行进中为目的地前缀 TRAVELING_TO_x）
        journey_start_time: 加入仿真的时间
        segment_start_time: 当前阶段开始时间
        x: 最近一次落点的X坐标
        y: 最近一次落点的Y坐标
        is_active: 是否仍在仿真中
        target_station: 目标处理站
        has_box: 是否持有箱子
        boxes_processed: 累计处理箱子数
        edge: 当前行进路段
        switched_station: 最近一次前往处理站是否为中途换站
    """

    id: int
    stage: Stage = field(default_factory=Stage.idle)
    location: str = "A"
    journey_start_time: float = 0.0
    segment_start_time: float = 0.0
    x: float = 0.0
    y: float = 0.0
    is_active: bool = True
    target_station: Optional[str] = None
    has_box: bool = False
    boxes_processed: int = 0
    edge: Optional[Edge] = None
    switched_station: bool = False
    _segment_counter: int = field(default=0, repr=False)

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def begin_segment(
        self,
        stage: Stage,
        from_ref: Optional[str],
        from_point: Point,
        to_ref: str,
        to_point: Point,
        now: float,
    ) -> Edge:
        """
        开始一个新的行进路段

        Args:
            stage: 新阶段（必须为位移阶段）
            from_ref: 起点位置ID
            from_point: 起点坐标
            to_ref: 终点位置ID
            to_point: 终点坐标
            now: 当前虚拟时间

        Returns:
            新路段
        """
        self._segment_counter += 1
        self.stage = stage
        self.location = f"TRAVELING_TO_{to_ref}"
        self.segment_start_time = now
        self.edge = Edge(
            from_ref=from_ref,
            from_point=from_point,
            to_ref=to_ref,
            to_point=to_point,
            start_time=now,
            seq=self._segment_counter,
        )
        return self.edge

    def arrive(self, location_id: str, point: Point, now: float):
        """
        到达某个位置（坐标落点，结束当前路段）

        Args:
            location_id: 位置ID
            point: 位置坐标
            now: 当前虚拟时间
        """
        self.x = point.x
        self.y = point.y
        self.location = location_id
        self.segment_start_time = now
        self.edge = None

    def enter_stage(self, stage: Stage, now: float):
        """
        进入非位移阶段

        Args:
            stage: 新阶段
            now: 当前虚拟时间
        """
        self.stage = stage
        self.segment_start_time = now

    def is_on_segment(self, seq: Optional[int]) -> bool:
        """判断给定路段序号是否为当前路段"""
        return self.edge is not None and self.edge.seq == seq

    def deactivate(self):
        """
        停用旅行者（到达起点后移出仿真）
        """
        self.is_active = False
        self.stage = Stage(StageKind.COMPLETED)
        self.edge = None
        self.target_station = None

    def __str__(self) -> str:
        return f"Traveler({self.id}, stage={self.stage}, has_box={self.has_box})"
