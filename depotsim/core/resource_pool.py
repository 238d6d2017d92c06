"""
资源池
管理箱子库存和处理站的预约/占用

功能:
- 箱子库存（取箱、放回、记录处理完成）
- 处理站状态机（available → claimed → active → available）
- 负载计算与等待队列（负载感知策略使用）
- 处理站使用记录与利用率统计

设计要点:
- claim 失败属于正常竞争结果，返回 False 而不是抛异常
- activate 预约者不匹配时为空操作，记录日志
- release 无条件回到 available，不处理等待队列（交接由状态机负责）
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from depotsim.models.config_model import Location
from depotsim.models.enums import StationState
from depotsim.models.station_model import ProcessingStation


logger = logging.getLogger(__name__)


class ResourcePool:
    """
    资源池

    Attributes:
        initial_boxes: 箱子总数
        available_boxes: 可取箱子数（不会为负）
        total_processed: 已处理箱子数（单调递增，不超过箱子总数）
        stations: 处理站ID -> 处理站
    """

    def __init__(self, initial_boxes: int, station_locations: List[Location]):
        """
        初始化资源池

        Args:
            initial_boxes: 箱子总数
            station_locations: 处理站位置列表
        """
        self.initial_boxes = initial_boxes
        self.available_boxes = initial_boxes
        self.total_processed = 0

        self.stations: Dict[str, ProcessingStation] = {}

        # 在途旅行者（处理站ID -> 旅行者ID集合）
        self._en_route: Dict[str, Set[int]] = {}

        # 使用记录（处理站ID -> [(开始时间, 结束时间), ...]）
        self.usage_log: Dict[str, List[Tuple[float, float]]] = {}

        for loc in station_locations:
            self.add_station(loc)

    # ============ 箱子库存 ============

    def has_boxes(self) -> bool:
        return self.available_boxes > 0

    def take_box(self) -> bool:
        """
        取一个箱子

        Returns:
            是否取到
        """
        if self.available_boxes <= 0:
            return False
        self.available_boxes -= 1
        return True

    def return_box(self):
        """
        放回一个箱子（预约失败时回滚）
        """
        if self.available_boxes + self.total_processed >= self.initial_boxes:
            logger.warning("放回箱子被忽略：库存已满")
            return
        self.available_boxes += 1

    def record_processed(self) -> int:
        """
        记录一个箱子处理完成

        Returns:
            处理后的累计数
        """
        if self.total_processed < self.initial_boxes:
            self.total_processed += 1
        else:
            logger.warning("处理数已达上限 %d，忽略本次计数", self.initial_boxes)
        return self.total_processed

    def all_processed(self) -> bool:
        return self.total_processed >= self.initial_boxes

    # ============ 处理站状态 ============

    def get_station(self, station_id: str) -> Optional[ProcessingStation]:
        return self.stations.get(station_id)

    def get_station_ids(self) -> List[str]:
        return list(self.stations.keys())

    def get_available_station_ids(self) -> List[str]:
        """
        获取所有空闲处理站

        Returns:
            空闲处理站ID列表（按配置顺序）
        """
        return [sid for sid, st in self.stations.items() if st.is_available]

    def claim(self, station_id: str, traveler_id: int) -> bool:
        """
        预约处理站

        Args:
            station_id: 处理站ID
            traveler_id: 旅行者ID

        Returns:
            是否预约成功
        """
        station = self.stations.get(station_id)
        if station is None:
            logger.debug("预约失败：处理站 %s 不存在", station_id)
            return False
        if station.state != StationState.AVAILABLE:
            logger.info(
                "旅行者 %d 预约 %s 失败（当前状态 %s）",
                traveler_id, station_id, station.state.value,
            )
            return False

        station.state = StationState.CLAIMED
        station.claimed_by = traveler_id
        logger.debug("旅行者 %d 预约了处理站 %s", traveler_id, station_id)
        return True

    def activate(self, station_id: str, traveler_id: int, now: float = 0.0) -> bool:
        """
        开始处理（claimed → active）

        Args:
            station_id: 处理站ID
            traveler_id: 旅行者ID（必须是预约者）
            now: 当前虚拟时间（用于使用记录）

        Returns:
            是否成功
        """
        station = self.stations.get(station_id)
        if station is None:
            logger.debug("激活失败：处理站 %s 不存在", station_id)
            return False
        if station.state != StationState.CLAIMED or station.claimed_by != traveler_id:
            logger.warning(
                "旅行者 %d 激活 %s 失败（状态 %s，预约者 %s）",
                traveler_id, station_id, station.state.value, station.claimed_by,
            )
            return False

        station.state = StationState.ACTIVE
        station.current_occupant = traveler_id
        self._log_usage_start(station_id, now)
        return True

    def release(self, station_id: str, now: float = 0.0):
        """
        释放处理站（无条件回到 available）

        Args:
            station_id: 处理站ID
            now: 当前虚拟时间
        """
        station = self.stations.get(station_id)
        if station is None:
            logger.debug("释放忽略：处理站 %s 不存在", station_id)
            return
        if station.state == StationState.ACTIVE:
            station.boxes_processed += 1
            self._log_usage_end(station_id, now)
        station.state = StationState.AVAILABLE
        station.claimed_by = None
        station.current_occupant = None

    def release_claims_of(self, traveler_id: int, now: float = 0.0) -> List[str]:
        """
        释放某旅行者持有的所有处理站（旅行者被移除时使用）

        Args:
            traveler_id: 旅行者ID
            now: 当前虚拟时间

        Returns:
            被释放的处理站ID列表
        """
        released = []
        for sid, station in self.stations.items():
            if station.holder == traveler_id:
                self.release(sid, now)
                released.append(sid)
        return released

    # ============ 负载与等待队列 ============

    def mark_en_route(self, station_id: str, traveler_id: int):
        self._en_route.setdefault(station_id, set()).add(traveler_id)

    def clear_en_route(self, traveler_id: int):
        for travelers in self._en_route.values():
            travelers.discard(traveler_id)

    def get_en_route_count(self, station_id: str) -> int:
        return len(self._en_route.get(station_id, ()))

    def get_load(self, station_id: str) -> int:
        """
        计算处理站负载

        负载 = 处理中/已预约(0或1) + 排队人数 + 在途人数

        Args:
            station_id: 处理站ID

        Returns:
            负载值
        """
        station = self.stations.get(station_id)
        if station is None:
            return 0
        busy = 0 if station.is_available else 1
        return busy + len(station.queue) + self.get_en_route_count(station_id)

    def get_loads(self) -> Dict[str, int]:
        return {sid: self.get_load(sid) for sid in self.stations}

    def enqueue(self, station_id: str, traveler_id: int):
        """
        加入处理站等待队列

        Args:
            station_id: 处理站ID
            traveler_id: 旅行者ID
        """
        station = self.stations.get(station_id)
        if station is None:
            return
        if traveler_id not in station.queue:
            station.queue.append(traveler_id)

    def dequeue_next(self, station_id: str) -> Optional[int]:
        """
        取出等待队列中的下一个旅行者

        Args:
            station_id: 处理站ID

        Returns:
            旅行者ID，队列为空返回None
        """
        station = self.stations.get(station_id)
        if station is None or not station.queue:
            return None
        return station.queue.popleft()

    def remove_from_queues(self, traveler_id: int):
        for station in self.stations.values():
            if traveler_id in station.queue:
                station.queue.remove(traveler_id)

    def get_queue_length(self, station_id: str) -> int:
        station = self.stations.get(station_id)
        return len(station.queue) if station else 0

    # ============ 处理站增删与重定位 ============

    def add_station(self, location: Location) -> ProcessingStation:
        """
        添加处理站

        Args:
            location: 处理站位置

        Returns:
            新处理站
        """
        if location.id in self.stations:
            raise ValueError(f"处理站 {location.id} 已存在")
        station = ProcessingStation(id=location.id, x=location.x, y=location.y)
        self.stations[location.id] = station
        self.usage_log[location.id] = []
        return station

    def remove_station(self, station_id: str):
        """
        移除处理站

        Args:
            station_id: 处理站ID
        """
        if station_id not in self.stations:
            raise ValueError(f"未知处理站: {station_id}")
        del self.stations[station_id]
        self._en_route.pop(station_id, None)
        self.usage_log.pop(station_id, None)

    def relocate_station(self, station_id: str, x: float, y: float):
        """
        移动处理站坐标

        Args:
            station_id: 处理站ID
            x: 新X坐标
            y: 新Y坐标
        """
        station = self.stations.get(station_id)
        if station is None:
            raise ValueError(f"未知处理站: {station_id}")
        station.x = x
        station.y = y

    # ============ 使用记录与统计 ============

    def _log_usage_start(self, station_id: str, now: float):
        self.usage_log.setdefault(station_id, []).append((now, -1))

    def _log_usage_end(self, station_id: str, now: float):
        logs = self.usage_log.get(station_id)
        if not logs:
            return
        # 找到最后一个未完成的记录
        for i in range(len(logs) - 1, -1, -1):
            start, end = logs[i]
            if end == -1:
                logs[i] = (start, now)
                break

    def get_station_utilization(self, total_time: float, now: float) -> Dict[str, float]:
        """
        计算处理站利用率

        Args:
            total_time: 统计总时长
            now: 当前虚拟时间（未结束的使用按当前时间计）

        Returns:
            处理站ID -> 利用率
        """
        utilization = {}
        for sid, logs in self.usage_log.items():
            usage_time = 0.0
            for start, end in logs:
                usage_time += (end if end >= 0 else now) - start
            utilization[sid] = usage_time / total_time if total_time > 0 else 0.0
        return utilization

    def get_station_stats(self, total_time: float, now: float) -> List[Dict]:
        """
        获取处理站统计数据

        Args:
            total_time: 统计总时长
            now: 当前虚拟时间

        Returns:
            处理站统计列表
        """
        utilization = self.get_station_utilization(total_time, now)
        stats = []
        for sid, station in self.stations.items():
            work_time = sum(
                (end if end >= 0 else now) - start
                for start, end in self.usage_log.get(sid, [])
            )
            stats.append({
                "station_id": sid,
                "total_time": total_time,
                "work_time": work_time,
                "idle_time": max(0.0, total_time - work_time),
                "utilization_rate": utilization.get(sid, 0.0),
                "boxes_served": station.boxes_processed,
            })
        return stats

    def reset(self, initial_boxes: Optional[int] = None):
        """
        重置资源池（用于新仿真）

        Args:
            initial_boxes: 新的箱子总数（为空则沿用原值）
        """
        if initial_boxes is not None:
            self.initial_boxes = initial_boxes
        self.available_boxes = self.initial_boxes
        self.total_processed = 0
        for station in self.stations.values():
            station.reset()
        self._en_route = {}
        self.usage_log = {sid: [] for sid in self.stations}
