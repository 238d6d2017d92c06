"""
CSV导出工具
将时间线活动导出为CSV（用于表格软件查看）
"""

import csv
import io
from typing import List, Optional

from depotsim.models.timeline_model import Activity, TIMELINE_CSV_HEADERS


def export_timeline_csv(
    activities: List[Activity],
    now: Optional[float] = None
) -> str:
    """
    导出活动数据为CSV字符串

    Args:
        activities: 活动列表
        now: 当前虚拟时间（用于计算进行中活动的时长）

    Returns:
        CSV内容字符串
    """
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(TIMELINE_CSV_HEADERS)
    for activity in activities:
        writer.writerow(activity.to_csv_row(now))

    return output.getvalue()


def export_timeline_csv_bytes(
    activities: List[Activity],
    now: Optional[float] = None
) -> bytes:
    """
    导出活动数据为CSV字节（带BOM）

    Args:
        activities: 活动列表
        now: 当前虚拟时间

    Returns:
        CSV内容字节（UTF-8 with BOM）
    """
    content = export_timeline_csv(activities, now)
    return content.encode('utf-8-sig')
