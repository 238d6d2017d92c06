"""
仿真引擎主控
离散事件仿真的核心控制器

功能:
- 运行控制：开始、暂停、重置、单步、调速
- 旅行者管理：初始生成与按需添加
- 事件分发：到期事件交给状态机处理，结束事件停止仿真
- 状态输出：快照、通知订阅、时间线导出、统计

设计要点:
- 一个引擎实例持有一个 SimulationState，不存在模块级共享状态，
  多个引擎可以并存
- 每个时钟步先处理当前时刻所有到期事件，再推进时间
- 位置重定位与重新配置只允许在未运行时进行
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

from depotsim.models.config_model import SimulationConfig, ORIGIN_ID
from depotsim.models.enums import EventType, SimulationStatus
from depotsim.models.event_model import Notification, SimEvent
from depotsim.models.snapshot_model import (
    BoxStatus,
    Snapshot,
    StationView,
    TravelerView,
)
from depotsim.models.traveler_model import Traveler
from depotsim.core.driver import VirtualClock
from depotsim.core.event_collector import EventCollector
from depotsim.core.interpolator import interpolate_position
from depotsim.core.notifications import (
    NotificationBus,
    NotificationHandler,
    Subscription,
)
from depotsim.core.state import SimulationState
from depotsim.core.traveler_machine import TravelerStateMachine
from depotsim.utils.statistics import calculate_kpi


logger = logging.getLogger(__name__)


class SimulationStateError(RuntimeError):
    """仿真运行状态不允许当前操作（如运行中重定位）"""


class SimulationEngine:
    """
    仿真引擎主控

    负责协调整个仿真过程，包括：
    - 初始化仿真状态和组件
    - 时钟步推进与事件分发
    - 完成检测
    - 快照与结果收集
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        """
        初始化仿真引擎

        Args:
            config: 仿真配置（为空则使用默认配置）
        """
        self.sim_id = str(uuid.uuid4())
        self.created_at = datetime.now().isoformat()
        self.completed_at: Optional[str] = None

        # 通知总线与时间线在重新配置后保留订阅关系
        self.bus = NotificationBus()
        self.collector = EventCollector()
        self.bus.subscribe(self.collector.on_notification)

        self._build(config or SimulationConfig())

    def _build(self, config: SimulationConfig):
        self.config = config
        self.state = SimulationState.from_config(config, self.bus)
        self.machine = TravelerStateMachine(self.state)
        self.clock = VirtualClock(config.tick_size, config.speed_multiplier)

    # ============ 属性 ============

    @property
    def status(self) -> SimulationStatus:
        return self.state.status

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    @property
    def current_time(self) -> float:
        return self.state.now

    @property
    def speed_multiplier(self) -> float:
        return self.clock.speed_multiplier

    @property
    def pool(self):
        return self.state.pool

    @property
    def travelers(self) -> Dict[int, Traveler]:
        return self.state.travelers

    def active_traveler_count(self) -> int:
        return self.state.active_count()

    def conservation_holds(self) -> bool:
        return self.state.conservation_holds()

    # ============ 运行控制 ============

    def configure(self, config: SimulationConfig):
        """
        应用新配置并重置仿真

        Args:
            config: 新配置

        Raises:
            SimulationStateError: 仿真运行中
        """
        if self.is_running:
            raise SimulationStateError("仿真运行中，不能修改配置")
        self.bus.reset_sequence()
        self.collector.clear()
        self._build(config)
        self.completed_at = None
        logger.info(
            "已应用配置: %d 名旅行者, %d 个箱子, %d 个处理站, 策略=%s",
            config.num_travelers, config.num_boxes,
            len(self.state.pool.stations), config.station_policy.value,
        )

    def start(self) -> bool:
        """
        开始/继续仿真

        首次开始时生成初始旅行者；已完成的仿真需要先重置

        Returns:
            是否处于运行状态
        """
        if self.is_running:
            return True
        if self.status == SimulationStatus.COMPLETED:
            logger.info("仿真已完成，需要重置后才能重新开始")
            return False

        self._ensure_initialized()
        self.state.status = SimulationStatus.RUNNING
        logger.info("仿真开始 @ %.1f", self.current_time)
        return True

    def stop(self):
        """
        暂停仿真（保留所有状态，可继续）
        """
        if self.is_running:
            self.state.status = SimulationStatus.PAUSED
            logger.info("仿真暂停 @ %.1f", self.current_time)

    def reset(self):
        """
        重置仿真到配置的初始状态

        清空事件队列、旅行者和时间线；位置保持不变
        """
        state = self.state
        state.status = SimulationStatus.PENDING
        state.queue.clear()
        state.travelers.clear()
        state.retired.clear()
        state.pool.reset(self.config.num_boxes)
        state.completion.reset(self.config.num_boxes)
        state.bus.reset_sequence()
        state.next_traveler_id = 1
        state.round_robin_index = 0
        state.initialized = False
        state.rng = np.random.default_rng(self.config.random_seed)
        self.clock.reset()
        self.collector.clear()
        self.completed_at = None
        logger.info("仿真已重置")

    def add_traveler(self) -> int:
        """
        添加一个旅行者（在起点出发）

        Returns:
            新旅行者ID

        Raises:
            SimulationStateError: 完成检测已触发或仿真已完成
        """
        state = self.state
        if self.status == SimulationStatus.COMPLETED or state.completion.triggered:
            raise SimulationStateError("仿真已结束，请先重置再添加旅行者")

        traveler_id = state.next_traveler_id
        state.next_traveler_id += 1

        origin = state.topology.origin
        traveler = Traveler(
            id=traveler_id,
            location=ORIGIN_ID,
            journey_start_time=self.current_time,
            segment_start_time=self.current_time,
            x=origin.x,
            y=origin.y,
        )
        state.travelers[traveler_id] = traveler
        # 无箱可取时由出发事件直接安排返回起点
        state.queue.schedule(
            self.config.start_delay, EventType.START_JOURNEY, traveler_id
        )
        logger.debug("添加旅行者 %d @ %.1f", traveler_id, self.current_time)
        return traveler_id

    def set_speed(self, speed_multiplier: float):
        """
        设置速度倍率（下一个时钟步生效）

        Args:
            speed_multiplier: 速度倍率
        """
        self.clock.set_speed(speed_multiplier)
        logger.info("速度倍率设为 %.2fx", speed_multiplier)

    def relocate(self, location_id: str, x: float, y: float):
        """
        移动位置（起点、取货点或处理站）

        Args:
            location_id: 位置ID
            x: 新X坐标
            y: 新Y坐标

        Raises:
            SimulationStateError: 仿真运行中
            ValueError: 未知位置
        """
        if self.is_running:
            raise SimulationStateError("仿真运行中，不能移动位置")
        if self.state.topology.point_of(location_id) is None:
            raise ValueError(f"未知位置: {location_id}")
        self.state.topology.relocate(location_id, x, y)
        logger.info("位置 %s 移动到 (%.1f, %.1f)", location_id, x, y)

    def _ensure_initialized(self):
        if self.state.initialized:
            return
        for _ in range(self.config.num_travelers):
            self.add_traveler()
        self.state.initialized = True
        logger.info("生成 %d 名初始旅行者", self.config.num_travelers)

    # ============ 时钟步 ============

    def tick(self) -> int:
        """
        执行一个时钟步（仅在运行中有效）

        Returns:
            本步处理的事件数
        """
        if not self.is_running:
            return 0
        processed = self._drain_due()
        if self.is_running:
            self._advance()
        return processed

    def step(self) -> int:
        """
        手动单步（暂停状态下调试用）

        Returns:
            本步处理的事件数
        """
        if self.status == SimulationStatus.COMPLETED:
            return 0
        if self.is_running:
            return self.tick()

        self._ensure_initialized()
        if self.status == SimulationStatus.PENDING:
            self.state.status = SimulationStatus.PAUSED
        processed = self._drain_due()
        if self.status != SimulationStatus.COMPLETED:
            self._advance()
        return processed

    def _advance(self):
        self.state.queue.advance_to(self.current_time + self.clock.increment)
        self.clock.ticks += 1

    def _drain_due(self) -> int:
        processed = 0
        queue = self.state.queue
        while True:
            event = queue.pop_due(self.current_time)
            if event is None:
                break
            self._dispatch(event)
            processed += 1
            if self.status == SimulationStatus.COMPLETED:
                break
        return processed

    def _dispatch(self, event: SimEvent):
        if event.event_type == EventType.SIMULATION_COMPLETE:
            self._complete()
            return

        changed = self.machine.process(event)
        if changed and event.event_type == EventType.ARRIVE_AT_ORIGIN:
            self._check_completion()

    def _check_completion(self):
        state = self.state
        if state.completion.check(state.pool.total_processed, state.active_count()):
            state.queue.schedule(
                self.config.completion_delay, EventType.SIMULATION_COMPLETE, 0
            )

    def _complete(self):
        if self.status == SimulationStatus.COMPLETED:
            return
        self.state.status = SimulationStatus.COMPLETED
        self.completed_at = datetime.now().isoformat()
        bus = self.state.bus
        bus.publish(Notification(
            seq=bus.next_seq(),
            kind=EventType.SIMULATION_COMPLETE,
            traveler_id=0,
            time=self.current_time,
        ))
        logger.info("仿真完成 @ %.1f", self.current_time)

    # ============ 订阅 ============

    def subscribe(self, handler: NotificationHandler):
        """注册通知回调"""
        self.bus.subscribe(handler)

    def open_channel(self, maxlen: Optional[int] = None) -> Subscription:
        """打开缓冲通知通道"""
        return self.bus.open_channel(maxlen)

    # ============ 输出 ============

    def get_traveler_views(self) -> List[TravelerView]:
        """
        获取活跃旅行者视图（坐标为插值结果）

        Returns:
            旅行者视图列表
        """
        views = []
        for traveler in self.state.get_active_travelers():
            position = interpolate_position(
                traveler, self.current_time, self.state.topology, self.config
            )
            views.append(TravelerView(
                id=traveler.id,
                stage=str(traveler.stage),
                stage_kind=traveler.stage.kind.value,
                station_id=traveler.stage.station_id,
                location=traveler.location,
                x=position.x,
                y=position.y,
                has_box=traveler.has_box,
                boxes_processed=traveler.boxes_processed,
            ))
        return views

    def get_station_views(self) -> List[StationView]:
        return [
            StationView(
                id=station.id,
                x=station.x,
                y=station.y,
                state=station.state.value,
                claimed_by=station.claimed_by,
                current_occupant=station.current_occupant,
                queue_length=len(station.queue),
                boxes_processed=station.boxes_processed,
            )
            for station in self.state.pool.stations.values()
        ]

    def get_box_status(self) -> BoxStatus:
        pool = self.state.pool
        return BoxStatus(
            initial_boxes=pool.initial_boxes,
            available_boxes=pool.available_boxes,
            held_boxes=self.state.held_boxes(),
            total_processed=pool.total_processed,
        )

    def snapshot(self) -> Snapshot:
        """
        获取当前仿真快照

        Returns:
            快照
        """
        return Snapshot(
            current_time=self.current_time,
            status=self.status,
            is_running=self.is_running,
            speed_multiplier=self.speed_multiplier,
            travelers=self.get_traveler_views(),
            stations=self.get_station_views(),
            boxes=self.get_box_status(),
            queue_length=len(self.state.queue),
        )

    def get_status(self) -> Dict[str, Any]:
        """
        获取运行状态摘要

        Returns:
            状态字典
        """
        pool = self.state.pool
        return {
            "sim_id": self.sim_id,
            "status": self.status.value,
            "is_running": self.is_running,
            "current_time": self.current_time,
            "ticks": self.clock.ticks,
            "speed_multiplier": self.speed_multiplier,
            "active_travelers": self.active_traveler_count(),
            "available_boxes": pool.available_boxes,
            "total_processed": pool.total_processed,
            "queue_length": len(self.state.queue),
            "created_at": self.created_at,
            "completed_at": self.completed_at,
        }

    def export_timeline(self) -> Dict[str, Any]:
        """导出时间线报告"""
        return self.collector.export(self.current_time)

    def get_kpi(self) -> Dict[str, Any]:
        """
        计算KPI

        Returns:
            KPI字典
        """
        return calculate_kpi(
            travelers=list(self.state.travelers.values()) + self.state.retired,
            station_stats=self.state.pool.get_station_stats(
                self.current_time, self.current_time
            ),
            activities=self.collector.get_all_activities(),
            total_processed=self.state.pool.total_processed,
            initial_boxes=self.state.pool.initial_boxes,
            sim_duration=self.current_time,
        )
