"""
路程时间与位置插值

- travel_time: 纯函数，只依赖两点坐标和配置常量
- interpolate_position: 根据旅行者当前路段计算渲染坐标

插值仅用于展示，到达时间完全由已调度的事件决定
"""

from typing import Optional

from depotsim.models.config_model import SimulationConfig
from depotsim.models.traveler_model import Point, Traveler
from depotsim.core.topology import Topology


def travel_time(
    start: Point,
    end: Point,
    base_speed: float = 2.0,
    scale: float = 20.0,
    minimum: float = 100.0,
) -> float:
    """
    计算路程时间

    时间 = max(距离 / 基础速度 × 缩放系数, 最短时间)

    Args:
        start: 起点
        end: 终点
        base_speed: 基础速度
        scale: 缩放系数
        minimum: 最短时间

    Returns:
        路程时间（虚拟时间）

    Example:
        >>> travel_time(Point(0, 0), Point(30, 40))
        500.0
    """
    distance = start.distance_to(end)
    return max(distance / base_speed * scale, minimum)


def travel_time_for(config: SimulationConfig, start: Point, end: Point) -> float:
    """按配置参数计算路程时间"""
    return travel_time(
        start,
        end,
        base_speed=config.base_speed,
        scale=config.travel_time_scale,
        minimum=config.min_travel_time,
    )


def interpolate_position(
    traveler: Traveler,
    now: float,
    topology: Topology,
    config: SimulationConfig,
) -> Point:
    """
    计算旅行者在当前时刻的坐标

    路段端点优先使用拓扑中的当前坐标（位置被移动后依然正确），
    路段时长在读取时重新计算

    Args:
        traveler: 旅行者
        now: 当前虚拟时间
        topology: 当前拓扑
        config: 仿真配置

    Returns:
        插值后的坐标
    """
    edge = traveler.edge
    if edge is None or not traveler.stage.is_traveling:
        return traveler.position

    start = _resolve(edge.from_ref, edge.from_point, topology)
    end = _resolve(edge.to_ref, edge.to_point, topology)

    duration = travel_time_for(config, start, end)
    elapsed = max(0.0, now - edge.start_time)
    progress = min(1.0, elapsed / duration) if duration > 0 else 1.0

    return Point(
        start.x + (end.x - start.x) * progress,
        start.y + (end.y - start.y) * progress,
    )


def _resolve(ref: Optional[str], fallback: Point, topology: Topology) -> Point:
    if ref is None:
        return fallback
    point = topology.point_of(ref)
    return point if point is not None else fallback
