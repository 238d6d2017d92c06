"""
时间转换工具
提供虚拟时间、时钟步数和真实时间之间的换算

功能:
- 虚拟时间格式化（分:秒.毫秒）
- 虚拟时间 ↔ 时钟步数
- 估算真实运行耗时
"""

import math
import re
from typing import Optional

from depotsim.models.timeline_model import format_virtual_time


_TIME_PATTERN = re.compile(r"^\s*(\d+):(\d{1,2})(?:\.(\d{1,3}))?\s*$")


def parse_virtual_time(text: str) -> Optional[float]:
    """
    解析 分:秒.毫秒 格式

    Args:
        text: 时间字符串

    Returns:
        虚拟时间，格式错误返回None

    Example:
        >>> parse_virtual_time("01:01.500")
        61500.0
    """
    match = _TIME_PATTERN.match(text or "")
    if not match:
        return None
    minutes = int(match.group(1))
    seconds = int(match.group(2))
    if seconds >= 60:
        return None
    millis = int((match.group(3) or "0").ljust(3, "0"))
    return float(minutes * 60000 + seconds * 1000 + millis)


def virtual_time_to_ticks(
    virtual_time: float,
    tick_size: float = 50.0,
    speed_multiplier: float = 1.0
) -> int:
    """
    计算到达某个虚拟时间所需的时钟步数

    Args:
        virtual_time: 虚拟时间
        tick_size: 每步虚拟时间（速度为1时）
        speed_multiplier: 速度倍率

    Returns:
        时钟步数（向上取整）
    """
    increment = tick_size * speed_multiplier
    if increment <= 0:
        raise ValueError("每步推进的虚拟时间必须为正数")
    return int(math.ceil(virtual_time / increment))


def ticks_to_virtual_time(
    ticks: int,
    tick_size: float = 50.0,
    speed_multiplier: float = 1.0
) -> float:
    """
    时钟步数换算为虚拟时间

    Args:
        ticks: 时钟步数
        tick_size: 每步虚拟时间
        speed_multiplier: 速度倍率

    Returns:
        虚拟时间
    """
    return ticks * tick_size * speed_multiplier


def estimate_wall_clock_seconds(
    virtual_time: float,
    tick_size: float = 50.0,
    speed_multiplier: float = 1.0,
    tick_interval_ms: int = 50
) -> float:
    """
    估算以驱动器节奏运行到某虚拟时间所需的真实秒数

    Args:
        virtual_time: 虚拟时间
        tick_size: 每步虚拟时间
        speed_multiplier: 速度倍率
        tick_interval_ms: 每步真实间隔（毫秒）

    Returns:
        真实秒数
    """
    ticks = virtual_time_to_ticks(virtual_time, tick_size, speed_multiplier)
    return ticks * tick_interval_ms / 1000.0


def format_duration(units: float) -> str:
    """
    格式化时长为易读字符串

    Args:
        units: 时长（虚拟时间，约等于毫秒）

    Returns:
        格式化字符串，如 "2.5秒" 或 "1分5秒"
    """
    seconds = units / 1000.0
    if seconds < 60:
        return f"{seconds:.1f}秒"

    minutes = int(seconds // 60)
    rest = int(round(seconds % 60))
    if rest == 0:
        return f"{minutes}分"
    return f"{minutes}分{rest}秒"


def format_duration_short(units: float) -> str:
    """
    格式化时长为短格式

    Args:
        units: 时长（虚拟时间）

    Returns:
        格式化字符串，如 "850ms" 或 "2.5s"
    """
    if units < 1000:
        return f"{units:.0f}ms"
    return f"{units / 1000.0:.1f}s"


__all__ = [
    "format_virtual_time",
    "parse_virtual_time",
    "virtual_time_to_ticks",
    "ticks_to_virtual_time",
    "estimate_wall_clock_seconds",
    "format_duration",
    "format_duration_short",
]
