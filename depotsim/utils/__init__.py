"""
工具函数包
提供各种辅助功能

模块说明:
- csv_export.py: 时间线CSV导出
- time_converter.py: 时间转换工具
- statistics.py: KPI统计计算
- validators.py: 数据验证工具
"""

from depotsim.utils.csv_export import (
    export_timeline_csv,
    export_timeline_csv_bytes,
)

from depotsim.utils.time_converter import (
    format_virtual_time,
    parse_virtual_time,
    virtual_time_to_ticks,
    ticks_to_virtual_time,
    estimate_wall_clock_seconds,
    format_duration,
    format_duration_short,
)

from depotsim.utils.statistics import (
    calculate_kpi,
    calculate_utilization_rate,
    calculate_cycle_times,
    calculate_traveler_statistics,
    calculate_station_statistics,
    calculate_activity_statistics,
    summarize_values,
)

from depotsim.utils.validators import (
    validate_config,
    validate_location_update,
    validate_simulation_request,
)

__all__ = [
    # CSV导出
    "export_timeline_csv",
    "export_timeline_csv_bytes",
    # 时间转换
    "format_virtual_time",
    "parse_virtual_time",
    "virtual_time_to_ticks",
    "ticks_to_virtual_time",
    "estimate_wall_clock_seconds",
    "format_duration",
    "format_duration_short",
    # 统计
    "calculate_kpi",
    "calculate_utilization_rate",
    "calculate_cycle_times",
    "calculate_traveler_statistics",
    "calculate_station_statistics",
    "calculate_activity_statistics",
    "summarize_values",
    # 验证
    "validate_config",
    "validate_location_update",
    "validate_simulation_request",
]
