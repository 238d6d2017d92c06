"""
时间线模型
定义时间线事件和旅行者活动区间，用于甘特图/历史导出

功能:
- 时间线事件（每条通知对应一条）
- 活动区间（按阶段切分的开始/结束时间）
- 虚拟时间格式化
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class TimelineEvent:
    """
    时间线事件

    Attributes:
        id: 事件ID（旅行者-类型-时间）
        traveler_id: 旅行者ID
        event_type: 事件类型（stage_xxx）
        timestamp: 虚拟时间
        stage: 阶段字符串
        data: 附加数据（坐标、是否持箱）
    """

    id: str
    traveler_id: int
    event_type: str
    timestamp: float
    stage: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "traveler_id": self.traveler_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp,
            "stage": self.stage,
            "data": dict(self.data),
        }


@dataclass
class Activity:
    """
    活动区间

    记录旅行者在某一阶段的起止时间

    Attributes:
        id: 活动ID
        traveler_id: 旅行者ID
        name: 活动名称（如 "Travel to S1"）
        kind: 阶段类型值
        start_time: 开始时间（虚拟时间）
        end_time: 结束时间（进行中为None）
        station_id: 关联处理站
        color: 显示颜色
    """

    id: str
    traveler_id: int
    name: str
    kind: str
    start_time: float
    end_time: Optional[float] = None
    station_id: Optional[str] = None
    color: str = "#8E8E93"

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    def duration(self, now: Optional[float] = None) -> float:
        """
        计算活动时长

        Args:
            now: 当前虚拟时间（活动进行中时用于计算时长）

        Returns:
            时长
        """
        if self.end_time is not None:
            return self.end_time - self.start_time
        if now is None:
            return 0.0
        return max(0.0, now - self.start_time)

    def overlaps_with(self, start: float, end: float) -> bool:
        """
        判断是否与指定时间范围重叠

        Args:
            start: 范围开始时间
            end: 范围结束时间

        Returns:
            是否重叠
        """
        own_end = self.end_time if self.end_time is not None else float("inf")
        return own_end > start and self.start_time < end

    def close(self, end_time: float):
        """结束活动"""
        if self.end_time is None:
            self.end_time = end_time

    def to_export_dict(self, now: Optional[float] = None) -> dict:
        """
        转换为导出格式

        Args:
            now: 当前虚拟时间

        Returns:
            导出字典
        """
        return {
            "travelerId": self.traveler_id,
            "travelerName": f"Traveler {self.traveler_id}",
            "activityName": self.name,
            "startTime": format_virtual_time(self.start_time),
            "endTime": (
                format_virtual_time(self.end_time)
                if self.end_time is not None else "In Progress"
            ),
            "start": self.start_time,
            "end": self.end_time,
            "duration": self.duration(now),
            "color": self.color,
        }

    def to_csv_row(self, now: Optional[float] = None) -> List:
        """
        转换为CSV行数据

        Args:
            now: 当前虚拟时间

        Returns:
            CSV字段列表
        """
        return [
            self.traveler_id,
            self.name,
            self.kind,
            self.station_id or "",
            f"{self.start_time:.0f}",
            f"{self.end_time:.0f}" if self.end_time is not None else "",
            f"{self.duration(now):.0f}",
            "completed" if self.is_completed else "in_progress",
        ]


def format_virtual_time(units: float) -> str:
    """
    将虚拟时间格式化为 分:秒.毫秒

    Args:
        units: 虚拟时间（1单位约等于1毫秒）

    Returns:
        格式化字符串

    Example:
        >>> format_virtual_time(61500)
        '01:01.500'
    """
    total_ms = int(round(units))
    minutes, remainder = divmod(total_ms, 60000)
    seconds, millis = divmod(remainder, 1000)
    return f"{minutes:02d}:{seconds:02d}.{millis:03d}"


# CSV表头
TIMELINE_CSV_HEADERS = [
    "traveler_id",
    "activity",
    "stage",
    "station",
    "start_time",
    "end_time",
    "duration",
    "status",
]
