"""
事件收集器
订阅通知总线，记录时间线事件并生成旅行者活动区间（甘特图数据源）

功能:
- 每条通知记录为一条时间线事件
- 阶段变化时结束上一段活动、开始新活动
- 活动查询与统计
- 导出 {events, activities, summary} 报告
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from depotsim.models.enums import StageKind, STAGE_META
from depotsim.models.event_model import Notification
from depotsim.models.timeline_model import Activity, TimelineEvent


# 不生成活动区间的阶段
_NON_ACTIVITY_STAGES = frozenset({StageKind.IDLE.value, StageKind.COMPLETED.value})


def activity_label(stage_kind: str, station_id: Optional[str], switched: bool = False) -> str:
    """
    生成活动名称

    Args:
        stage_kind: 阶段类型值
        station_id: 处理站ID
        switched: 是否为中途换站

    Returns:
        活动名称（如 "Travel to S1"、"Switch to S2"）
    """
    meta = STAGE_META[StageKind(stage_kind)]
    template = meta.get("switch_label", meta["label"]) if switched else meta["label"]
    return template.format(station=station_id or "")


def activity_color(stage_kind: str, switched: bool = False) -> str:
    meta = STAGE_META[StageKind(stage_kind)]
    if switched:
        return meta.get("switch_color", meta["color"])
    return meta["color"]


class EventCollector:
    """
    事件收集器

    作为通知总线的订阅者使用: bus.subscribe(collector.on_notification)
    """

    def __init__(self):
        self.events: List[TimelineEvent] = []
        self.activities: List[Activity] = []
        self._open: Dict[int, Activity] = {}
        self._activity_seq = 0
        self.last_time = 0.0

    def on_notification(self, notification: Notification):
        """
        处理一条通知

        Args:
            notification: 状态变化通知
        """
        self.last_time = max(self.last_time, notification.time)
        if notification.stage_kind:
            event_type = f"stage_{notification.stage_kind}"
        else:
            event_type = notification.kind.value.lower()

        self.events.append(TimelineEvent(
            id=f"{notification.traveler_id}-{notification.seq}",
            traveler_id=notification.traveler_id,
            event_type=event_type,
            timestamp=notification.time,
            stage=notification.stage,
            data={
                "kind": notification.kind.value,
                "x": notification.x,
                "y": notification.y,
                "has_box": notification.has_box,
                "switched": notification.switched,
            },
        ))

        if notification.traveler_id <= 0 or not notification.stage_kind:
            return

        self._close_open(notification.traveler_id, notification.time)
        if notification.stage_kind in _NON_ACTIVITY_STAGES:
            return

        self._activity_seq += 1
        activity = Activity(
            id=f"activity-{self._activity_seq}",
            traveler_id=notification.traveler_id,
            name=activity_label(
                notification.stage_kind, notification.station_id, notification.switched
            ),
            kind=notification.stage_kind,
            start_time=notification.time,
            station_id=notification.station_id,
            color=activity_color(notification.stage_kind, notification.switched),
        )
        self.activities.append(activity)
        self._open[notification.traveler_id] = activity

    def _close_open(self, traveler_id: int, time: float):
        activity = self._open.pop(traveler_id, None)
        if activity is not None:
            activity.close(time)

    # ============ 查询 ============

    def get_all_events(self) -> List[TimelineEvent]:
        """获取所有时间线事件"""
        return self.events

    def get_all_activities(self) -> List[Activity]:
        """获取所有活动区间"""
        return self.activities

    def get_activities_by_traveler(self, traveler_id: int) -> List[Activity]:
        return [a for a in self.activities if a.traveler_id == traveler_id]

    def get_activities_by_station(self, station_id: str) -> List[Activity]:
        return [a for a in self.activities if a.station_id == station_id]

    def get_activities_in_range(self, start: float, end: float) -> List[Activity]:
        """
        获取与时间范围重叠的活动

        Args:
            start: 开始时间
            end: 结束时间

        Returns:
            活动列表
        """
        return [a for a in self.activities if a.overlaps_with(start, end)]

    def get_traveler_ids(self) -> List[int]:
        """获取出现过的所有旅行者ID"""
        return sorted(set(a.traveler_id for a in self.activities))

    def get_in_progress(self) -> List[Activity]:
        return [a for a in self.activities if not a.is_completed]

    def get_kind_counts(self) -> Dict[str, int]:
        """
        获取各阶段类型的活动数量

        Returns:
            阶段类型 -> 数量
        """
        counts = {}
        for activity in self.activities:
            counts[activity.kind] = counts.get(activity.kind, 0) + 1
        return counts

    def get_time_by_kind(self, now: Optional[float] = None) -> Dict[str, float]:
        """
        获取各阶段类型的累计时长

        Args:
            now: 当前虚拟时间（进行中的活动按当前时间计）

        Returns:
            阶段类型 -> 累计时长
        """
        now = self.last_time if now is None else now
        totals: Dict[str, float] = {}
        for activity in self.activities:
            totals[activity.kind] = totals.get(activity.kind, 0.0) + activity.duration(now)
        return totals

    def get_activities_for_display(
        self,
        start: Optional[float] = None,
        end: Optional[float] = None,
        traveler_id: Optional[int] = None,
        kind: Optional[str] = None,
        now: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        获取用于显示的活动数据

        Args:
            start: 开始时间筛选
            end: 结束时间筛选
            traveler_id: 旅行者筛选
            kind: 阶段类型筛选
            now: 当前虚拟时间

        Returns:
            格式化的活动列表
        """
        filtered = self.activities

        if start is not None and end is not None:
            filtered = [a for a in filtered if a.overlaps_with(start, end)]

        if traveler_id is not None:
            filtered = [a for a in filtered if a.traveler_id == traveler_id]

        if kind is not None:
            filtered = [a for a in filtered if a.kind == kind]

        return [a.to_export_dict(now) for a in filtered]

    # ============ 导出 ============

    def get_summary(self) -> Dict[str, Any]:
        """
        获取时间线汇总

        Returns:
            汇总信息字典
        """
        completed = sum(1 for a in self.activities if a.is_completed)
        return {
            "totalEvents": len(self.events),
            "totalActivities": len(self.activities),
            "uniqueTravelers": len(self.get_traveler_ids()),
            "completedActivities": completed,
            "inProgressActivities": len(self.activities) - completed,
            "exportDate": datetime.now().isoformat(),
        }

    def export(self, now: Optional[float] = None) -> Dict[str, Any]:
        """
        导出时间线报告

        Args:
            now: 当前虚拟时间（用于计算进行中活动的时长）

        Returns:
            {events, activities, summary}
        """
        now = self.last_time if now is None else now
        return {
            "events": [e.to_dict() for e in self.events],
            "activities": [a.to_export_dict(now) for a in self.activities],
            "summary": self.get_summary(),
        }

    def clear(self):
        """清空所有记录"""
        self.events = []
        self.activities = []
        self._open = {}
        self._activity_seq = 0
        self.last_time = 0.0
