"""
KPI统计计算工具
提供仿真结果的统计分析功能

功能:
- 利用率计算
- 箱子周期时间统计（取货开始 → 处理完成）
- 旅行者统计（处理数、各阶段时长）
- 处理站统计（利用率、服务箱数、瓶颈）
- 综合KPI汇总
"""

from typing import Any, Dict, List, Optional

import numpy as np

from depotsim.models.enums import StageKind, TRAVEL_STAGES
from depotsim.models.timeline_model import Activity
from depotsim.models.traveler_model import Traveler


# 利用率超过该值的处理站视为瓶颈
BOTTLENECK_UTILIZATION = 0.8

_TRAVEL_KINDS = frozenset(kind.value for kind in TRAVEL_STAGES)


def calculate_utilization_rate(
    work_time: float,
    total_time: float
) -> float:
    """
    计算利用率

    Args:
        work_time: 工作时间
        total_time: 总时间

    Returns:
        利用率（0-1）
    """
    if total_time <= 0:
        return 0.0
    return min(1.0, work_time / total_time)


def calculate_cycle_times(activities: List[Activity]) -> List[float]:
    """
    计算每个箱子的周期时间

    周期 = 同一旅行者最近一次取货开始 → 处理活动结束

    Args:
        activities: 活动列表

    Returns:
        周期时间列表（仅包含已完成的处理）
    """
    cycle_times = []
    by_traveler: Dict[int, List[Activity]] = {}
    for activity in activities:
        by_traveler.setdefault(activity.traveler_id, []).append(activity)

    for traveler_activities in by_traveler.values():
        collect_start: Optional[float] = None
        for activity in sorted(traveler_activities, key=lambda a: a.start_time):
            if activity.kind == StageKind.COLLECTING.value:
                collect_start = activity.start_time
            elif (
                activity.kind == StageKind.PROCESSING_AT_STATION.value
                and activity.is_completed
                and collect_start is not None
            ):
                cycle_times.append(activity.end_time - collect_start)
                collect_start = None

    return cycle_times


def summarize_values(values: List[float]) -> Dict[str, float]:
    """
    计算均值、标准差、最值和P90

    Args:
        values: 数值列表

    Returns:
        统计摘要（空列表时全部为0）
    """
    if not values:
        return {"count": 0, "mean": 0.0, "std": 0.0, "min": 0.0, "max": 0.0, "p90": 0.0}
    arr = np.asarray(values, dtype=float)
    return {
        "count": int(arr.size),
        "mean": float(arr.mean()),
        "std": float(arr.std()),
        "min": float(arr.min()),
        "max": float(arr.max()),
        "p90": float(np.percentile(arr, 90)),
    }


def calculate_traveler_statistics(
    travelers: List[Traveler],
    activities: List[Activity],
    now: float
) -> List[Dict[str, Any]]:
    """
    计算每个旅行者的统计数据

    Args:
        travelers: 旅行者列表（含已移除的）
        activities: 活动列表
        now: 当前虚拟时间

    Returns:
        旅行者统计列表
    """
    stats = []
    for traveler in sorted(travelers, key=lambda t: t.id):
        own = [a for a in activities if a.traveler_id == traveler.id]
        travel = sum(a.duration(now) for a in own if a.kind in _TRAVEL_KINDS)
        waiting = sum(
            a.duration(now) for a in own
            if a.kind == StageKind.WAITING_AT_STATION.value
        )
        processing = sum(
            a.duration(now) for a in own
            if a.kind == StageKind.PROCESSING_AT_STATION.value
        )
        collecting = sum(
            a.duration(now) for a in own
            if a.kind == StageKind.COLLECTING.value
        )
        active_time = travel + waiting + processing + collecting
        stats.append({
            "id": traveler.id,
            "boxes_processed": traveler.boxes_processed,
            "is_active": traveler.is_active,
            "active_time": active_time,
            "travel_time": travel,
            "collecting_time": collecting,
            "waiting_time": waiting,
            "processing_time": processing,
            "processing_share": calculate_utilization_rate(processing, active_time),
        })
    return stats


def calculate_station_statistics(station_stats: List[Dict]) -> Dict[str, Any]:
    """
    汇总处理站统计

    Args:
        station_stats: ResourcePool.get_station_stats() 的结果

    Returns:
        处理站统计摘要
    """
    if not station_stats:
        return {
            "count": 0,
            "avg_utilization": 0.0,
            "bottlenecks": [],
            "details": []
        }

    utilizations = np.asarray(
        [s["utilization_rate"] for s in station_stats], dtype=float
    )
    bottlenecks = [
        s["station_id"] for s in station_stats
        if s["utilization_rate"] > BOTTLENECK_UTILIZATION
    ]
    avg_util = float(utilizations.mean())

    return {
        "count": len(station_stats),
        "avg_utilization": avg_util,
        "avg_utilization_percentage": f"{avg_util * 100:.1f}%",
        "max_utilization": float(utilizations.max()),
        "min_utilization": float(utilizations.min()),
        "total_boxes_served": sum(s["boxes_served"] for s in station_stats),
        "bottlenecks": bottlenecks,
        "details": station_stats,
    }


def calculate_activity_statistics(
    activities: List[Activity],
    now: float
) -> Dict[str, Any]:
    """
    计算活动统计数据

    Args:
        activities: 活动列表
        now: 当前虚拟时间

    Returns:
        活动统计摘要
    """
    counts: Dict[str, int] = {}
    times: Dict[str, float] = {}
    for activity in activities:
        counts[activity.kind] = counts.get(activity.kind, 0) + 1
        times[activity.kind] = times.get(activity.kind, 0.0) + activity.duration(now)

    total_time = sum(times.values())
    percentages = {
        kind: f"{t / total_time * 100:.1f}%" if total_time > 0 else "0%"
        for kind, t in times.items()
    }

    return {
        "total_activities": len(activities),
        "completed": sum(1 for a in activities if a.is_completed),
        "by_kind": counts,
        "time_by_kind": times,
        "time_percentages": percentages,
    }


def calculate_kpi(
    travelers: List[Traveler],
    station_stats: List[Dict],
    activities: List[Activity],
    total_processed: int,
    initial_boxes: int,
    sim_duration: float
) -> Dict[str, Any]:
    """
    计算完整的KPI指标

    Args:
        travelers: 旅行者列表（含已移除的）
        station_stats: 处理站统计
        activities: 活动列表
        total_processed: 已处理箱子数
        initial_boxes: 箱子总数
        sim_duration: 仿真时长（虚拟时间）

    Returns:
        KPI指标字典
    """
    completion_rate = total_processed / initial_boxes if initial_boxes > 0 else 0.0
    output_kpi = {
        "total_processed": total_processed,
        "initial_boxes": initial_boxes,
        "completion_rate": completion_rate,
        "completion_percentage": f"{completion_rate * 100:.1f}%",
        # 每1000虚拟时间单位处理的箱子数
        "throughput_per_1000": (
            total_processed / sim_duration * 1000 if sim_duration > 0 else 0.0
        ),
    }

    cycle = summarize_values(calculate_cycle_times(activities))
    time_kpi = {
        "sim_duration": sim_duration,
        "avg_cycle_time": cycle["mean"],
        "cycle_time_std": cycle["std"],
        "cycle_time_p90": cycle["p90"],
        "cycles_measured": cycle["count"],
    }

    traveler_stats = calculate_traveler_statistics(travelers, activities, sim_duration)
    boxes = [t["boxes_processed"] for t in traveler_stats]
    traveler_kpi = {
        "traveler_count": len(traveler_stats),
        "avg_boxes_per_traveler": float(np.mean(boxes)) if boxes else 0.0,
        "max_boxes_per_traveler": max(boxes) if boxes else 0,
        "total_waiting_time": sum(t["waiting_time"] for t in traveler_stats),
        "details": traveler_stats,
    }

    return {
        "output": output_kpi,
        "time_efficiency": time_kpi,
        "travelers": traveler_kpi,
        "stations": calculate_station_statistics(station_stats),
        "activities": calculate_activity_statistics(activities, sim_duration),
    }
