"""
数据模型包
包含系统中使用的数据模型（Pydantic配置/快照模型与dataclass实体）

模块说明:
- enums.py: 枚举定义（EventType, StageKind等）
- config_model.py: 全局配置模型
- traveler_model.py: 旅行者、阶段与行进路段模型
- station_model.py: 处理站模型
- event_model.py: 仿真事件与通知模型
- timeline_model.py: 时间线事件与活动区间模型
- snapshot_model.py: 仿真快照模型
"""

from depotsim.models.enums import (
    EventType,
    StageKind,
    StationState,
    StationPolicy,
    TieBreak,
    SimulationStatus,
    STAGE_META,
    TRAVEL_STAGES,
    STATION_STAGES,
)
from depotsim.models.config_model import (
    Location,
    SimulationConfig,
    ORIGIN_ID,
    COLLECTION_ID,
    load_default_config,
)
from depotsim.models.traveler_model import Point, Stage, Edge, Traveler
from depotsim.models.station_model import ProcessingStation
from depotsim.models.event_model import SimEvent, Notification
from depotsim.models.timeline_model import TimelineEvent, Activity
from depotsim.models.snapshot_model import (
    TravelerView,
    StationView,
    BoxStatus,
    Snapshot,
)

__all__ = [
    # 枚举
    "EventType",
    "StageKind",
    "StationState",
    "StationPolicy",
    "TieBreak",
    "SimulationStatus",
    "STAGE_META",
    "TRAVEL_STAGES",
    "STATION_STAGES",
    # 配置
    "Location",
    "SimulationConfig",
    "ORIGIN_ID",
    "COLLECTION_ID",
    "load_default_config",
    # 实体
    "Point",
    "Stage",
    "Edge",
    "Traveler",
    "ProcessingStation",
    # 事件
    "SimEvent",
    "Notification",
    # 时间线
    "TimelineEvent",
    "Activity",
    # 快照
    "TravelerView",
    "StationView",
    "BoxStatus",
    "Snapshot",
]
