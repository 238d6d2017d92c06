"""
结果查询接口
提供时间线查询、导出和KPI统计功能

API端点:
- GET /api/results/timeline: 获取时间线活动（支持筛选）
- GET /api/results/timeline/export: 导出时间线报告（json/csv）
- GET /api/results/timeline/csv: 下载时间线CSV
- GET /api/results/kpi: 获取KPI指标
"""

import io
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from depotsim.api.simulation import APIResponse, get_engine
from depotsim.utils.csv_export import export_timeline_csv_bytes

router = APIRouter()


# ============ 辅助函数 ============

def _csv_response() -> StreamingResponse:
    engine = get_engine()
    content = export_timeline_csv_bytes(
        engine.collector.get_all_activities(), engine.current_time
    )
    filename = f"timeline_{engine.sim_id[:8]}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    return StreamingResponse(
        io.BytesIO(content),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}"
        }
    )


# ============ API端点 ============

@router.get("/timeline", response_model=APIResponse)
async def get_timeline(
    start: Optional[float] = Query(default=None, ge=0, description="开始时间"),
    end: Optional[float] = Query(default=None, ge=0, description="结束时间"),
    traveler_id: Optional[int] = Query(default=None, ge=1, description="旅行者ID"),
    kind: Optional[str] = Query(default=None, description="阶段类型")
):
    """
    获取时间线活动

    支持按时间范围、旅行者和阶段类型筛选
    """
    engine = get_engine()
    collector = engine.collector
    activities = collector.get_activities_for_display(
        start=start,
        end=end,
        traveler_id=traveler_id,
        kind=kind,
        now=engine.current_time,
    )
    return APIResponse(
        success=True,
        message=f"共 {len(activities)} 条活动",
        data={
            "activities": activities,
            "summary": collector.get_summary(),
        }
    )


@router.get("/timeline/export")
async def export_timeline(format: str = Query(default="json", description="导出格式（json/csv）")):
    """
    导出时间线报告

    json: {events, activities, summary}
    csv: 活动表格文件
    """
    if format == "json":
        return APIResponse(
            success=True,
            message="导出时间线成功",
            data=get_engine().export_timeline()
        )
    if format == "csv":
        return _csv_response()
    raise HTTPException(status_code=404, detail=f"不支持的导出格式: {format}")


@router.get("/timeline/csv")
async def download_timeline_csv():
    """
    下载时间线CSV
    """
    return _csv_response()


@router.get("/kpi", response_model=APIResponse)
async def get_kpi():
    """
    获取KPI指标

    包含产出、周期时间、旅行者统计、处理站利用率和活动分布
    """
    engine = get_engine()
    return APIResponse(
        success=True,
        message="获取KPI成功",
        data=engine.get_kpi()
    )
