"""
仿真状态聚合
一个仿真实例的全部可变状态，由引擎持有并传给状态机

包含:
- 事件队列（含当前虚拟时间）
- 资源池（箱子库存、处理站）
- 拓扑
- 旅行者注册表
- 通知总线、完成检测器、随机数发生器
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from depotsim.models.config_model import SimulationConfig
from depotsim.models.enums import SimulationStatus
from depotsim.models.traveler_model import Traveler
from depotsim.core.event_queue import EventQueue
from depotsim.core.resource_pool import ResourcePool
from depotsim.core.topology import Topology
from depotsim.core.notifications import NotificationBus
from depotsim.core.completion import CompletionDetector


@dataclass
class SimulationState:
    """
    仿真状态

    Attributes:
        config: 仿真配置
        queue: 事件队列
        pool: 资源池
        topology: 拓扑
        bus: 通知总线
        completion: 完成检测器
        rng: 随机数发生器（平局选择）
        travelers: 活跃旅行者（ID -> 旅行者）
        retired: 已返回起点并移除的旅行者
        status: 仿真状态
        next_traveler_id: 下一个旅行者ID
        round_robin_index: 轮询选择的起始位置
        initialized: 是否已生成初始旅行者
    """

    config: SimulationConfig
    queue: EventQueue
    pool: ResourcePool
    topology: Topology
    bus: NotificationBus
    completion: CompletionDetector
    rng: np.random.Generator
    travelers: Dict[int, Traveler] = field(default_factory=dict)
    retired: List[Traveler] = field(default_factory=list)
    status: SimulationStatus = SimulationStatus.PENDING
    next_traveler_id: int = 1
    round_robin_index: int = 0
    initialized: bool = False

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        bus: Optional[NotificationBus] = None,
    ) -> "SimulationState":
        """
        根据配置创建初始状态

        Args:
            config: 仿真配置
            bus: 通知总线（为空则新建）

        Returns:
            新状态
        """
        pool = ResourcePool(config.num_boxes, config.get_station_locations())
        return cls(
            config=config,
            queue=EventQueue(),
            pool=pool,
            topology=Topology(config.origin, config.collection_point, pool),
            bus=bus if bus is not None else NotificationBus(),
            completion=CompletionDetector(config.num_boxes),
            rng=np.random.default_rng(config.random_seed),
        )

    @property
    def now(self) -> float:
        return self.queue.current_time

    @property
    def is_running(self) -> bool:
        return self.status == SimulationStatus.RUNNING

    def get_active_travelers(self) -> List[Traveler]:
        return [t for t in self.travelers.values() if t.is_active]

    def active_count(self) -> int:
        return len(self.get_active_travelers())

    def held_boxes(self) -> int:
        return sum(1 for t in self.travelers.values() if t.is_active and t.has_box)

    def conservation_holds(self) -> bool:
        """
        检查箱子守恒: 可取 + 持有 + 已处理 == 总数
        """
        pool = self.pool
        return (
            pool.available_boxes + self.held_boxes() + pool.total_processed
            == pool.initial_boxes
        )
