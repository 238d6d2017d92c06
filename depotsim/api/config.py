"""
配置管理接口
提供默认配置获取、配置验证和位置拓扑管理功能

API端点:
- GET /api/config/default: 获取默认配置
- POST /api/config/validate: 验证配置有效性
- GET /api/config/topology: 获取当前位置拓扑
- POST /api/config/locations/{location_id}: 移动位置（仅未运行时）
"""

from typing import Any, Dict, List

from fastapi import APIRouter
from pydantic import BaseModel, Field

from depotsim.api.simulation import APIResponse, get_engine
from depotsim.core.simulation_engine import SimulationStateError
from depotsim.models.config_model import load_default_config
from depotsim.utils.validators import (
    validate_location_update,
    validate_simulation_request,
)

router = APIRouter()


# ============ 请求/响应模型 ============

class ConfigValidationResult(BaseModel):
    """配置验证结果"""
    valid: bool
    errors: List[str] = []
    warnings: List[str] = []


class LocationUpdate(BaseModel):
    """位置更新请求"""
    x: float = Field(description="新X坐标")
    y: float = Field(description="新Y坐标")


# ============ API端点 ============

@router.get("/default", response_model=APIResponse)
async def get_default_config():
    """
    获取默认配置

    优先读取 depotsim/config/default_config.yaml，不存在时使用内置默认值
    """
    config = load_default_config()
    return APIResponse(
        success=True,
        message="获取默认配置成功",
        data=config.model_dump(mode="json")
    )


@router.post("/validate", response_model=APIResponse)
async def validate_config(config: Dict[str, Any]):
    """
    验证配置有效性

    检查内容:
    - 参数范围（数量、时长、速度）
    - 处理站ID唯一且不使用保留ID
    - 坐标范围与重合
    """
    parsed, errors, warnings = validate_simulation_request(config)
    result = ConfigValidationResult(
        valid=parsed is not None,
        errors=errors,
        warnings=warnings
    )
    return APIResponse(
        success=True,
        message="配置有效" if result.valid else f"配置存在 {len(errors)} 个错误",
        data=result.model_dump()
    )


@router.get("/topology", response_model=APIResponse)
async def get_topology():
    """
    获取当前位置拓扑

    返回起点A、取货点C和所有处理站的坐标
    """
    topology = get_engine().state.topology
    return APIResponse(
        success=True,
        message="获取拓扑成功",
        data=topology.to_dict()
    )


@router.post("/locations/{location_id}", response_model=APIResponse)
async def relocate(location_id: str, update: LocationUpdate):
    """
    移动位置

    仅在仿真未运行时允许；移动后行进中旅行者的插值坐标按新位置计算
    """
    engine = get_engine()
    known_ids = list(engine.state.topology.to_dict().keys())
    is_valid, errors = validate_location_update(
        location_id, update.x, update.y, known_ids
    )
    if not is_valid:
        return APIResponse(
            success=False,
            message="; ".join(errors)
        )

    try:
        engine.relocate(location_id, update.x, update.y)
    except SimulationStateError as e:
        return APIResponse(success=False, message=str(e))

    return APIResponse(
        success=True,
        message=f"位置 {location_id} 已移动",
        data=engine.state.topology.to_dict()
    )
