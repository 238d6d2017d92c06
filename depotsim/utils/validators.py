"""
数据验证工具
提供各种数据验证功能

功能:
- 配置参数验证（pydantic约束之外的组合检查）
- 位置更新验证
- 仿真请求验证（原始字典 → 配置对象 + 错误列表）
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from depotsim.models.config_model import SimulationConfig


# 坐标范围（与显示画布一致）
COORD_MIN = 0.0
COORD_MAX = 2000.0


def validate_config(config: SimulationConfig) -> Tuple[bool, List[str], List[str]]:
    """
    验证全局配置

    在 SimulationConfig.validate_config() 的基础上补充坐标和时长检查

    Args:
        config: 全局配置

    Returns:
        (是否有效, 错误列表, 警告列表)
    """
    _, errors, warnings = config.validate_config()
    errors = list(errors)
    warnings = list(warnings)

    locations = [config.origin, config.collection_point] + config.get_station_locations()
    for loc in locations:
        for axis, value in (("x", loc.x), ("y", loc.y)):
            if value < COORD_MIN or value > COORD_MAX:
                errors.append(
                    f"位置 {loc.id} 的{axis}坐标 {value} 超出范围"
                    f" [{COORD_MIN:.0f}, {COORD_MAX:.0f}]"
                )

    seen = {}
    for loc in locations:
        key = (loc.x, loc.y)
        if key in seen and seen[key] != loc.id:
            warnings.append(f"位置 {loc.id} 与 {seen[key]} 坐标重合")
        seen.setdefault(key, loc.id)

    if config.tick_size * config.speed_multiplier > config.min_travel_time:
        warnings.append("每步推进时间大于最短路程时间，动画会出现跳变")

    is_valid = len(errors) == 0
    return is_valid, errors, warnings


def validate_location_update(
    location_id: str,
    x: float,
    y: float,
    known_ids: List[str]
) -> Tuple[bool, List[str]]:
    """
    验证位置更新请求

    Args:
        location_id: 位置ID
        x: 新X坐标
        y: 新Y坐标
        known_ids: 已有位置ID列表

    Returns:
        (是否有效, 错误列表)
    """
    errors = []
    if location_id not in known_ids:
        errors.append(f"未知位置: {location_id}")
    if not (COORD_MIN <= x <= COORD_MAX):
        errors.append(f"x坐标 {x} 超出范围")
    if not (COORD_MIN <= y <= COORD_MAX):
        errors.append(f"y坐标 {y} 超出范围")
    return len(errors) == 0, errors


def validate_simulation_request(
    data: Dict[str, Any]
) -> Tuple[Optional[SimulationConfig], List[str], List[str]]:
    """
    验证仿真请求

    Args:
        data: 原始配置字典

    Returns:
        (配置对象或None, 错误列表, 警告列表)
    """
    try:
        config = SimulationConfig(**data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        return None, errors, []

    is_valid, errors, warnings = validate_config(config)
    if not is_valid:
        return None, errors, warnings
    return config, errors, warnings
