"""
事件收集器测试
测试通知到时间线活动的转换与导出

测试内容:
- 阶段变化切分活动区间
- 换站活动名称与颜色
- 结束通知只记录事件
- 查询与筛选
- 导出格式与CSV
"""

import csv
import io

from depotsim.models.enums import EventType, StageKind
from depotsim.models.event_model import Notification
from depotsim.models.timeline_model import TIMELINE_CSV_HEADERS, format_virtual_time
from depotsim.core.event_collector import EventCollector, activity_label
from depotsim.utils.csv_export import export_timeline_csv, export_timeline_csv_bytes


class NotificationFactory:
    """按顺序生成通知"""

    def __init__(self):
        self.seq = 0

    def make(
        self,
        traveler_id: int,
        time: float,
        stage_kind: StageKind,
        station_id: str = None,
        kind: EventType = EventType.START_JOURNEY,
        switched: bool = False,
    ) -> Notification:
        self.seq += 1
        stage = f"{stage_kind.value}({station_id})" if station_id else stage_kind.value
        return Notification(
            seq=self.seq,
            kind=kind,
            traveler_id=traveler_id,
            time=time,
            stage=stage,
            stage_kind=stage_kind.value,
            station_id=station_id,
            switched=switched,
        )


def feed_cycle(collector: EventCollector, factory: NotificationFactory, traveler_id: int = 1):
    """投递一次完整循环的通知"""
    steps = [
        (100, StageKind.MOVING_TO_COLLECTION, None),
        (1350, StageKind.COLLECTING, None),
        (2350, StageKind.MOVING_TO_STATION, "S1"),
        (3450, StageKind.PROCESSING_AT_STATION, "S1"),
        (5450, StageKind.RETURNING_TO_ORIGIN, None),
        (7000, StageKind.COMPLETED, None),
    ]
    for time, stage_kind, station_id in steps:
        collector.on_notification(factory.make(traveler_id, time, stage_kind, station_id))


class TestActivities:
    """活动区间测试"""

    def test_stage_change_closes_previous(self):
        """测试阶段变化结束上一段活动"""
        collector = EventCollector()
        factory = NotificationFactory()

        collector.on_notification(factory.make(1, 100, StageKind.MOVING_TO_COLLECTION))
        collector.on_notification(factory.make(1, 1300, StageKind.COLLECTING))

        first, second = collector.get_all_activities()
        assert first.name == "Travel to C"
        assert first.end_time == 1300
        assert first.duration() == 1200
        assert second.name == "Collecting Box"
        assert not second.is_completed
        assert second.duration(now=1500) == 200

    def test_full_cycle(self):
        """测试完整循环的活动名称"""
        collector = EventCollector()
        feed_cycle(collector, NotificationFactory())

        assert [a.name for a in collector.get_all_activities()] == [
            "Travel to C",
            "Collecting Box",
            "Travel to S1",
            "Processing at S1",
            "Return to A",
        ]
        assert collector.get_in_progress() == []
        assert collector.get_kind_counts()[StageKind.PROCESSING_AT_STATION.value] == 1
        assert collector.get_time_by_kind()[StageKind.PROCESSING_AT_STATION.value] == 2000

    def test_switch_label(self):
        """测试换站活动"""
        collector = EventCollector()
        factory = NotificationFactory()
        collector.on_notification(factory.make(1, 0, StageKind.MOVING_TO_STATION, "S1"))
        collector.on_notification(
            factory.make(1, 200, StageKind.MOVING_TO_STATION, "S2", switched=True)
        )

        activity = collector.get_all_activities()[-1]
        assert activity.name == "Switch to S2"
        assert activity.color == "#9933FF"
        assert activity_label(StageKind.RETURNING_TO_COLLECTION.value, None) == "Return to C"
        assert activity_label(StageKind.WAITING_AT_STATION.value, "S3") == "Waiting at S3"

    def test_completion_notification_only_recorded(self):
        """测试结束通知只记录为事件"""
        collector = EventCollector()
        collector.on_notification(Notification(
            seq=1, kind=EventType.SIMULATION_COMPLETE, traveler_id=0, time=9000
        ))

        assert collector.get_all_activities() == []
        events = collector.get_all_events()
        assert len(events) == 1
        assert events[0].event_type == "simulation_complete"

    def test_queries(self):
        """测试活动查询"""
        collector = EventCollector()
        factory = NotificationFactory()
        feed_cycle(collector, factory, traveler_id=1)
        collector.on_notification(factory.make(2, 100, StageKind.MOVING_TO_COLLECTION))

        assert collector.get_traveler_ids() == [1, 2]
        assert len(collector.get_activities_by_traveler(2)) == 1
        assert [a.name for a in collector.get_activities_by_station("S1")] == [
            "Travel to S1", "Processing at S1",
        ]
        in_range = collector.get_activities_in_range(3000, 4000)
        assert {a.name for a in in_range} >= {"Travel to S1", "Processing at S1"}

        display = collector.get_activities_for_display(
            traveler_id=1, kind=StageKind.COLLECTING.value
        )
        assert len(display) == 1
        assert display[0]["activityName"] == "Collecting Box"


class TestExport:
    """导出测试"""

    def test_export_format(self):
        """测试导出结构"""
        collector = EventCollector()
        factory = NotificationFactory()
        feed_cycle(collector, factory)
        collector.on_notification(factory.make(2, 6000, StageKind.MOVING_TO_COLLECTION))

        report = collector.export(now=6500)

        assert set(report) == {"events", "activities", "summary"}
        summary = report["summary"]
        assert summary["totalEvents"] == 7
        assert summary["totalActivities"] == 6
        assert summary["completedActivities"] == 5
        assert summary["inProgressActivities"] == 1
        assert summary["uniqueTravelers"] == 2
        assert "exportDate" in summary

        first = report["activities"][0]
        assert first["startTime"] == "00:00.100"
        assert first["endTime"] == "00:01.350"
        assert first["duration"] == 1250

        last = report["activities"][-1]
        assert last["endTime"] == "In Progress"
        assert last["end"] is None
        assert last["duration"] == 500

    def test_clear(self):
        """测试清空"""
        collector = EventCollector()
        feed_cycle(collector, NotificationFactory())
        collector.clear()

        assert collector.get_all_events() == []
        assert collector.get_all_activities() == []
        assert collector.get_summary()["totalActivities"] == 0

    def test_format_virtual_time(self):
        """测试虚拟时间格式化"""
        assert format_virtual_time(0) == "00:00.000"
        assert format_virtual_time(61500) == "01:01.500"
        assert format_virtual_time(3600000) == "60:00.000"

    def test_csv_export(self):
        """测试CSV导出"""
        collector = EventCollector()
        feed_cycle(collector, NotificationFactory())

        content = export_timeline_csv(collector.get_all_activities(), now=7000)
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[0] == TIMELINE_CSV_HEADERS
        assert len(rows) == 6
        assert rows[1][:2] == ["1", "Travel to C"]
        assert rows[4][3] == "S1"
        assert rows[4][6] == "2000"
        assert rows[4][7] == "completed"

    def test_csv_bytes_has_bom(self):
        """测试CSV字节带BOM"""
        content = export_timeline_csv_bytes([])
        assert content.startswith(b"\xef\xbb\xbf")
