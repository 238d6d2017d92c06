"""
旅行者状态机
按事件类型处理旅行者的阶段转换

完整流程:
1. StartJourney: 无箱可取 → 返回起点；否则前往取货点C
2. ArriveAtCollection: 落点C；无箱可取或已全部处理 → 返回起点；否则开始取货
3. CollectBox: 再次检查库存后取箱，按策略选择处理站
   - 预约制: 按选择顺序逐个尝试预约空闲站，全部失败则放回箱子并返回起点
   - 负载感知: 选择负载最小的站直接前往（不预约）
4. ArriveAtStation: 确认路段未被放弃
   - 预约制: 校验预约并开始处理；校验失败则放回箱子并返回起点
   - 负载感知: 空闲则开始处理，否则排队等待
5. FinishProcessing: 计数、释放处理站（负载感知下交给队首），
   已全部处理 → 返回起点，否则返回取货点
6. ArriveAtOrigin: 停用并移除旅行者，检查是否全部完成

设计要点:
- 每个处理函数开头都重新校验旅行者阶段/路段，过期事件为空操作
- 资源竞争（库存耗尽、预约失败）一律转为改道，不抛异常
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from depotsim.models.config_model import ORIGIN_ID, COLLECTION_ID
from depotsim.models.enums import (
    EventType,
    StageKind,
    StationPolicy,
    TieBreak,
)
from depotsim.models.event_model import SimEvent, Notification
from depotsim.models.traveler_model import Point, Stage, Traveler
from depotsim.core.interpolator import travel_time_for, interpolate_position
from depotsim.core.state import SimulationState


logger = logging.getLogger(__name__)


class TravelerStateMachine:
    """
    旅行者状态机

    所有状态读写都通过传入的 SimulationState 完成
    """

    def __init__(self, state: SimulationState):
        """
        初始化状态机

        Args:
            state: 仿真状态
        """
        self.state = state
        # 本次事件处理中需要追加发布的通知（旅行者, 是否换站）
        self._followups: List[Tuple[Traveler, bool]] = []
        self._loads_changed = False
        self._handlers: Dict[EventType, Callable[[Traveler, SimEvent], bool]] = {
            EventType.START_JOURNEY: self._on_start_journey,
            EventType.ARRIVE_AT_COLLECTION: self._on_arrive_at_collection,
            EventType.COLLECT_BOX: self._on_collect_box,
            EventType.ARRIVE_AT_STATION: self._on_arrive_at_station,
            EventType.FINISH_PROCESSING: self._on_finish_processing,
            EventType.ARRIVE_AT_ORIGIN: self._on_arrive_at_origin,
        }

    @property
    def config(self):
        return self.state.config

    @property
    def now(self) -> float:
        return self.state.now

    def handles(self, event_type: EventType) -> bool:
        return event_type in self._handlers

    def process(self, event: SimEvent) -> bool:
        """
        处理一个旅行者事件

        Args:
            event: 仿真事件

        Returns:
            是否发生了状态转换（过期/无效事件返回False）
        """
        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.debug("状态机不处理事件类型 %s", event.event_type.value)
            return False

        traveler = self.state.travelers.get(event.entity_id)
        if traveler is None or not traveler.is_active:
            logger.debug(
                "忽略事件 %s：旅行者 %s 不存在或已停用",
                event.id, event.entity_id,
            )
            return False

        self._followups = []
        self._loads_changed = False

        changed = handler(traveler, event)
        if not changed:
            return False

        logger.debug(
            "旅行者 %d: %s -> %s @ %.1f",
            traveler.id, event.event_type.value, traveler.stage, self.now,
        )
        self._notify(traveler, event.event_type)
        for other, switched in self._followups:
            self._notify(other, event.event_type, switched=switched)
        self._followups = []

        if event.event_type == EventType.ARRIVE_AT_ORIGIN:
            self._retire(traveler)
        if self._loads_changed:
            self._loads_changed = False
            self._rebalance(event.event_type)
        return True

    # ============ 事件处理 ============

    def _on_start_journey(self, traveler: Traveler, event: SimEvent) -> bool:
        if traveler.stage.kind != StageKind.IDLE:
            return False

        if not self.state.pool.has_boxes():
            logger.info("旅行者 %d 出发时已无箱可取，直接返回起点", traveler.id)
            self._head_to_origin(traveler)
            return True

        self._travel(
            traveler,
            Stage(StageKind.MOVING_TO_COLLECTION),
            COLLECTION_ID,
            EventType.ARRIVE_AT_COLLECTION,
        )
        return True

    def _on_arrive_at_collection(self, traveler: Traveler, event: SimEvent) -> bool:
        if not traveler.is_on_segment(event.payload.get("segment")):
            logger.debug("旅行者 %d 的到达C事件已过期", traveler.id)
            return False

        pool = self.state.pool
        traveler.arrive(COLLECTION_ID, self.state.topology.collection, self.now)

        if not pool.has_boxes() or pool.all_processed():
            logger.info("旅行者 %d 到达C时已无箱可取，返回起点", traveler.id)
            self._head_to_origin(traveler)
            return True

        traveler.enter_stage(Stage(StageKind.COLLECTING), self.now)
        self.state.queue.schedule(
            self.config.collection_duration,
            EventType.COLLECT_BOX,
            traveler.id,
        )
        return True

    def _on_collect_box(self, traveler: Traveler, event: SimEvent) -> bool:
        if traveler.stage.kind != StageKind.COLLECTING:
            return False

        pool = self.state.pool
        # 取货期间库存可能已被其他旅行者取完
        if not pool.take_box():
            logger.info("旅行者 %d 取货失败（库存已空），返回起点", traveler.id)
            self._head_to_origin(traveler)
            return True
        traveler.has_box = True

        if self.config.station_policy == StationPolicy.LOAD_AWARE:
            station_id = self.select_least_loaded()
            if station_id is None:
                self._abandon_box(traveler)
                self._head_to_origin(traveler)
                return True
            pool.mark_en_route(station_id, traveler.id)
        else:
            station_id = self._claim_any_station(traveler)
            if station_id is None:
                logger.info(
                    "旅行者 %d 没有可预约的处理站，放回箱子并返回起点", traveler.id
                )
                self._abandon_box(traveler)
                self._head_to_origin(traveler)
                return True

        traveler.target_station = station_id
        traveler.switched_station = False
        self._travel(
            traveler,
            Stage.moving_to_station(station_id),
            station_id,
            EventType.ARRIVE_AT_STATION,
            {"station_id": station_id},
        )
        self._loads_changed = True
        return True

    def _on_arrive_at_station(self, traveler: Traveler, event: SimEvent) -> bool:
        if not traveler.is_on_segment(event.payload.get("segment")):
            logger.debug("旅行者 %d 的到站事件已过期（已换站）", traveler.id)
            return False

        pool = self.state.pool
        station_id = event.payload.get("station_id")
        point = self.state.topology.point_of(station_id) if station_id else None
        if point is None:
            logger.warning("旅行者 %d 的目标处理站 %s 不存在", traveler.id, station_id)
            pool.clear_en_route(traveler.id)
            self._abandon_box(traveler)
            self._head_to_origin(traveler)
            return True

        traveler.arrive(station_id, point, self.now)

        if self.config.station_policy == StationPolicy.LOAD_AWARE:
            pool.clear_en_route(traveler.id)
            if pool.claim(station_id, traveler.id):
                self._start_processing(traveler, station_id)
            else:
                pool.enqueue(station_id, traveler.id)
                traveler.enter_stage(Stage.waiting_at_station(station_id), self.now)
                logger.debug("旅行者 %d 在 %s 排队", traveler.id, station_id)
            self._loads_changed = True
            return True

        if not self._start_processing(traveler, station_id):
            logger.warning(
                "旅行者 %d 到达 %s 时预约已失效，放回箱子并返回起点",
                traveler.id, station_id,
            )
            self._abandon_box(traveler)
            self._head_to_origin(traveler)
        return True

    def _on_finish_processing(self, traveler: Traveler, event: SimEvent) -> bool:
        station_id = event.payload.get("station_id")
        stage = traveler.stage
        if stage.kind != StageKind.PROCESSING_AT_STATION or stage.station_id != station_id:
            return False

        pool = self.state.pool
        pool.record_processed()
        pool.release(station_id, self.now)
        traveler.has_box = False
        traveler.boxes_processed += 1
        traveler.target_station = None

        if self.config.station_policy == StationPolicy.LOAD_AWARE:
            self._hand_over(station_id)

        if pool.all_processed():
            self._head_to_origin(traveler)
        else:
            self._travel(
                traveler,
                Stage(StageKind.RETURNING_TO_COLLECTION),
                COLLECTION_ID,
                EventType.ARRIVE_AT_COLLECTION,
            )

        self._loads_changed = True
        return True

    def _on_arrive_at_origin(self, traveler: Traveler, event: SimEvent) -> bool:
        if not traveler.is_on_segment(event.payload.get("segment")):
            return False

        pool = self.state.pool
        traveler.arrive(ORIGIN_ID, self.state.topology.origin, self.now)
        self._abandon_box(traveler)
        pool.release_claims_of(traveler.id, self.now)
        pool.remove_from_queues(traveler.id)
        pool.clear_en_route(traveler.id)
        traveler.deactivate()
        self._loads_changed = True
        return True

    # ============ 处理站选择 ============

    def order_candidates(self, candidates: List[str]) -> List[str]:
        """
        按平局规则排列候选处理站

        Args:
            candidates: 候选处理站ID

        Returns:
            尝试顺序
        """
        if not candidates:
            return []
        if self.config.tie_break == TieBreak.ROUND_ROBIN:
            ids = self.state.pool.get_station_ids()
            start = self.state.round_robin_index % len(ids)
            rotated = ids[start:] + ids[:start]
            return [sid for sid in rotated if sid in candidates]
        order = self.state.rng.permutation(len(candidates))
        return [candidates[i] for i in order]

    def select_least_loaded(self, exclude: Optional[str] = None) -> Optional[str]:
        """
        选择负载最小的处理站（包括忙碌的站）

        Args:
            exclude: 排除的处理站

        Returns:
            处理站ID，没有处理站时返回None
        """
        loads = {
            sid: load
            for sid, load in self.state.pool.get_loads().items()
            if sid != exclude
        }
        if not loads:
            return None
        min_load = min(loads.values())
        candidates = [sid for sid, load in loads.items() if load == min_load]
        chosen = self.order_candidates(candidates)[0]
        self._note_choice(chosen)
        return chosen

    def _claim_any_station(self, traveler: Traveler) -> Optional[str]:
        pool = self.state.pool
        for station_id in self.order_candidates(pool.get_available_station_ids()):
            if pool.claim(station_id, traveler.id):
                self._note_choice(station_id)
                return station_id
        return None

    def _note_choice(self, station_id: str):
        if self.config.tie_break == TieBreak.ROUND_ROBIN:
            ids = self.state.pool.get_station_ids()
            self.state.round_robin_index = ids.index(station_id) + 1

    # ============ 负载感知：交接与换站 ============

    def _hand_over(self, station_id: str):
        """
        把空出的处理站交给队首旅行者

        Args:
            station_id: 处理站ID
        """
        pool = self.state.pool
        while True:
            next_id = pool.dequeue_next(station_id)
            if next_id is None:
                return
            waiting = self.state.travelers.get(next_id)
            if waiting is None or not waiting.is_active:
                continue
            if waiting.stage != Stage.waiting_at_station(station_id):
                continue
            if pool.claim(station_id, waiting.id):
                self._start_processing(waiting, station_id)
                self._followups.append((waiting, False))
            return

    def _rebalance(self, kind: EventType):
        """
        负载变化后重新评估在途旅行者是否换站

        只有从取货点直接出发的在途旅行者可以换站，
        且备选站负载必须比当前目标（含自己）至少低 switch_threshold
        """
        if self.config.station_policy != StationPolicy.LOAD_AWARE:
            return

        pool = self.state.pool
        threshold = self.config.switch_threshold
        for traveler in list(self.state.travelers.values()):
            if not traveler.is_active or traveler.edge is None:
                continue
            if traveler.stage.kind != StageKind.MOVING_TO_STATION:
                continue
            if traveler.edge.from_ref != COLLECTION_ID:
                continue

            current = traveler.stage.station_id
            current_load = pool.get_load(current)
            loads = {
                sid: load for sid, load in pool.get_loads().items() if sid != current
            }
            if not loads:
                continue
            best_load = min(loads.values())
            if best_load > current_load - threshold:
                continue
            candidates = [sid for sid, load in loads.items() if load == best_load]
            target = self.order_candidates(candidates)[0]
            self._note_choice(target)
            self._switch(traveler, target, kind)

    def _switch(self, traveler: Traveler, station_id: str, kind: EventType):
        pool = self.state.pool
        position = interpolate_position(
            traveler, self.now, self.state.topology, self.config
        )
        logger.info(
            "旅行者 %d 中途换站 %s -> %s",
            traveler.id, traveler.stage.station_id, station_id,
        )
        pool.clear_en_route(traveler.id)
        pool.mark_en_route(station_id, traveler.id)
        traveler.x, traveler.y = position.x, position.y
        traveler.target_station = station_id
        traveler.switched_station = True
        self._travel(
            traveler,
            Stage.moving_to_station(station_id),
            station_id,
            EventType.ARRIVE_AT_STATION,
            {"station_id": station_id},
            start=position,
        )
        self._notify(traveler, kind, switched=True)

    # ============ 辅助 ============

    def _start_processing(self, traveler: Traveler, station_id: str) -> bool:
        if not self.state.pool.activate(station_id, traveler.id, self.now):
            return False
        traveler.enter_stage(Stage.processing_at_station(station_id), self.now)
        self.state.queue.schedule(
            self.config.processing_duration,
            EventType.FINISH_PROCESSING,
            traveler.id,
            {"station_id": station_id},
        )
        return True

    def _abandon_box(self, traveler: Traveler):
        if traveler.has_box:
            self.state.pool.return_box()
            traveler.has_box = False
        traveler.target_station = None

    def _head_to_origin(self, traveler: Traveler):
        self._travel(
            traveler,
            Stage(StageKind.RETURNING_TO_ORIGIN),
            ORIGIN_ID,
            EventType.ARRIVE_AT_ORIGIN,
        )

    def _travel(
        self,
        traveler: Traveler,
        stage: Stage,
        to_ref: str,
        arrival: EventType,
        payload: Optional[dict] = None,
        start: Optional[Point] = None,
    ):
        """
        开始一个行进路段并调度到达事件

        Args:
            traveler: 旅行者
            stage: 行进阶段
            to_ref: 目的地ID
            arrival: 到达事件类型
            payload: 附加数据
            start: 固定起点坐标（中途换站时使用），为空则从旅行者当前位置出发
        """
        topology = self.state.topology
        from_ref = None
        from_point = start
        if from_point is None:
            from_point = topology.point_of(traveler.location)
            if from_point is None:
                from_point = traveler.position
            else:
                from_ref = traveler.location

        to_point = topology.point_of(to_ref)
        duration = travel_time_for(self.config, from_point, to_point)
        edge = traveler.begin_segment(
            stage, from_ref, from_point, to_ref, to_point, self.now
        )

        data = dict(payload or {})
        data["segment"] = edge.seq
        self.state.queue.schedule(duration, arrival, traveler.id, data)

    def _retire(self, traveler: Traveler):
        self.state.travelers.pop(traveler.id, None)
        self.state.retired.append(traveler)
        logger.info(
            "旅行者 %d 返回起点并移出仿真（处理 %d 个箱子）",
            traveler.id, traveler.boxes_processed,
        )

    def _notify(self, traveler: Traveler, kind: EventType, switched: bool = False):
        self.state.bus.publish(Notification(
            seq=self.state.bus.next_seq(),
            kind=kind,
            traveler_id=traveler.id,
            time=self.now,
            stage=str(traveler.stage),
            stage_kind=traveler.stage.kind.value,
            station_id=traveler.stage.station_id,
            x=traveler.x,
            y=traveler.y,
            has_box=traveler.has_box,
            switched=switched,
        ))
