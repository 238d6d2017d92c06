"""
枚举定义
包含系统中使用的所有枚举类型

枚举类:
- EventType: 仿真事件类型（事件队列中的事件）
- StageKind: 旅行者阶段类型
- StationState: 处理站状态
- StationPolicy: 处理站选择策略
- TieBreak: 负载相同时的选择方式
- SimulationStatus: 仿真运行状态
"""

from enum import Enum


class EventType(str, Enum):
    """
    仿真事件类型枚举

    Values:
        START_JOURNEY: 旅行者出发
        ARRIVE_AT_COLLECTION: 到达取货点C
        COLLECT_BOX: 取货完成
        ARRIVE_AT_STATION: 到达处理站
        FINISH_PROCESSING: 处理完成
        ARRIVE_AT_ORIGIN: 返回起点A
        SIMULATION_COMPLETE: 仿真结束
    """
    START_JOURNEY = "TRAVELER_START_JOURNEY"
    ARRIVE_AT_COLLECTION = "TRAVELER_ARRIVE_AT_COLLECTION"
    COLLECT_BOX = "TRAVELER_COLLECT_BOX"
    ARRIVE_AT_STATION = "TRAVELER_ARRIVE_AT_STATION"
    FINISH_PROCESSING = "TRAVELER_FINISH_PROCESSING"
    ARRIVE_AT_ORIGIN = "TRAVELER_ARRIVE_AT_ORIGIN"
    SIMULATION_COMPLETE = "SIMULATION_COMPLETE"


class StageKind(str, Enum):
    """
    旅行者阶段类型枚举

    与处理站相关的阶段需要配合 station_id 使用（见 Stage）

    Values:
        IDLE: 空闲（刚加入，尚未出发）
        MOVING_TO_COLLECTION: 前往取货点
        COLLECTING: 取货中
        MOVING_TO_STATION: 前往处理站
        WAITING_AT_STATION: 在处理站排队
        PROCESSING_AT_STATION: 在处理站处理
        RETURNING_TO_COLLECTION: 处理后返回取货点
        RETURNING_TO_ORIGIN: 返回起点
        COMPLETED: 已完成
    """
    IDLE = "idle"
    MOVING_TO_COLLECTION = "moving_to_collection"
    COLLECTING = "collecting_at_collection"
    MOVING_TO_STATION = "moving_to_station"
    WAITING_AT_STATION = "waiting_at_station"
    PROCESSING_AT_STATION = "processing_at_station"
    RETURNING_TO_COLLECTION = "returning_to_collection"
    RETURNING_TO_ORIGIN = "returning_to_origin"
    COMPLETED = "completed"


class StationState(str, Enum):
    """
    处理站状态枚举

    状态循环: AVAILABLE → CLAIMED → ACTIVE → AVAILABLE

    Values:
        AVAILABLE: 空闲可用
        CLAIMED: 已被预约（旅行者在途）
        ACTIVE: 处理中
    """
    AVAILABLE = "available"
    CLAIMED = "claimed"
    ACTIVE = "active"


class StationPolicy(str, Enum):
    """
    处理站选择策略枚举

    Values:
        CLAIM_BASED: 预约制（只选择空闲站，出发前必须预约成功）
        LOAD_AWARE: 负载感知（选择负载最小的站，到站后排队）
    """
    CLAIM_BASED = "claim"
    LOAD_AWARE = "load"


class TieBreak(str, Enum):
    """
    负载相同时的选择方式

    Values:
        RANDOM: 随机选择
        ROUND_ROBIN: 轮询选择
    """
    RANDOM = "random"
    ROUND_ROBIN = "round_robin"


class SimulationStatus(str, Enum):
    """
    仿真状态枚举

    Values:
        PENDING: 未开始
        RUNNING: 运行中
        PAUSED: 已暂停（可继续）
        COMPLETED: 已完成
    """
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


# ============ 阶段元数据 ============

STAGE_META = {
    StageKind.IDLE: {
        "label": "Idle",
        "color": "#8E8E93",
    },
    StageKind.MOVING_TO_COLLECTION: {
        "label": "Travel to C",
        "color": "#32D74B",
    },
    StageKind.COLLECTING: {
        "label": "Collecting Box",
        "color": "#28CD41",
    },
    StageKind.MOVING_TO_STATION: {
        "label": "Travel to {station}",
        "switch_label": "Switch to {station}",
        "color": "#007AFF",
        "switch_color": "#9933FF",
    },
    StageKind.WAITING_AT_STATION: {
        "label": "Waiting at {station}",
        "color": "#FF6B6B",
    },
    StageKind.PROCESSING_AT_STATION: {
        "label": "Processing at {station}",
        "color": "#FF9500",
    },
    StageKind.RETURNING_TO_COLLECTION: {
        "label": "Return to C",
        "color": "#28B946",
    },
    StageKind.RETURNING_TO_ORIGIN: {
        "label": "Return to A",
        "color": "#34C759",
    },
    StageKind.COMPLETED: {
        "label": "Completed",
        "color": "#636366",
    },
}

# 位移阶段（需要插值计算位置）
TRAVEL_STAGES = frozenset({
    StageKind.MOVING_TO_COLLECTION,
    StageKind.MOVING_TO_STATION,
    StageKind.RETURNING_TO_COLLECTION,
    StageKind.RETURNING_TO_ORIGIN,
})

# 与处理站绑定的阶段
STATION_STAGES = frozenset({
    StageKind.MOVING_TO_STATION,
    StageKind.WAITING_AT_STATION,
    StageKind.PROCESSING_AT_STATION,
})
