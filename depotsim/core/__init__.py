"""
核心仿真模块包
包含基于SimPy事件循环的仓储搬运仿真组件

模块说明:
- simulation_engine.py: 仿真引擎主控（运行控制、快照、统计）
- event_queue.py: 事件队列（SimPy Environment 驱动）
- resource_pool.py: 箱子库存与处理站资源池
- topology.py: 位置拓扑（起点、取货点、处理站坐标）
- traveler_machine.py: 旅行者状态机（含处理站选择策略）
- interpolator.py: 路程时间与位置插值
- completion.py: 完成检测
- notifications.py: 状态变更通知总线
- state.py: 仿真状态聚合
- driver.py: 虚拟时钟与异步驱动器
- event_collector.py: 事件收集器（时间线数据源）
"""

from depotsim.core.simulation_engine import SimulationEngine, SimulationStateError
from depotsim.core.event_queue import EventQueue
from depotsim.core.resource_pool import ResourcePool
from depotsim.core.topology import Topology
from depotsim.core.traveler_machine import TravelerStateMachine
from depotsim.core.completion import CompletionDetector
from depotsim.core.notifications import NotificationBus, Subscription
from depotsim.core.state import SimulationState
from depotsim.core.driver import SimulationDriver, VirtualClock
from depotsim.core.event_collector import EventCollector

__all__ = [
    "SimulationEngine",
    "SimulationStateError",
    "EventQueue",
    "ResourcePool",
    "Topology",
    "TravelerStateMachine",
    "CompletionDetector",
    "NotificationBus",
    "Subscription",
    "SimulationState",
    "SimulationDriver",
    "VirtualClock",
    "EventCollector",
]
