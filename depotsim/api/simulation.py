"""
仿真控制接口
提供仿真的配置、启动、暂停、重置、单步等功能

API端点:
- POST /api/simulation/configure: 应用新配置
- POST /api/simulation/start: 开始/继续仿真（后台驱动）
- POST /api/simulation/stop: 暂停仿真
- POST /api/simulation/reset: 重置仿真
- POST /api/simulation/travelers: 添加旅行者
- POST /api/simulation/speed: 设置速度倍率
- POST /api/simulation/step: 单步执行（暂停时）
- GET /api/simulation/snapshot: 获取当前快照
- GET /api/simulation/status: 获取运行状态
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from depotsim.core.driver import SimulationDriver
from depotsim.core.simulation_engine import SimulationEngine, SimulationStateError
from depotsim.models.config_model import SimulationConfig, load_default_config
from depotsim.utils.validators import validate_simulation_request

router = APIRouter()

logger = logging.getLogger(__name__)


# ============ 数据模型 ============

class APIResponse(BaseModel):
    """统一API响应格式"""
    success: bool
    message: str
    data: Optional[Any] = None


class SpeedRequest(BaseModel):
    """速度设置请求"""
    speed_multiplier: float = Field(gt=0, le=100, description="速度倍率")


class StepRequest(BaseModel):
    """单步请求"""
    steps: int = Field(default=1, ge=1, le=10000, description="时钟步数")


# ============ 仿真会话 ============

class SimulationSession:
    """
    当前服务进程持有的仿真会话

    引擎运行时由一个 asyncio 后台任务按 tick_interval_ms 驱动
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.engine = SimulationEngine(config or load_default_config())
        self.driver = SimulationDriver(self.engine)
        self.task: Optional[asyncio.Task] = None

    @property
    def driving(self) -> bool:
        return self.task is not None and not self.task.done()

    def launch(self):
        """启动后台驱动任务（已在运行则忽略）"""
        if self.driving:
            return
        self.driver = SimulationDriver(self.engine)
        self.task = asyncio.create_task(self.driver.run())

    async def halt(self):
        """暂停引擎并等待后台任务退出"""
        self.engine.stop()
        self.driver.request_stop()
        if self.task is not None:
            await self.task
            self.task = None


session = SimulationSession()


def get_engine() -> SimulationEngine:
    """获取当前会话的仿真引擎"""
    return session.engine


# ============ API端点 ============

@router.post("/configure", response_model=APIResponse)
async def configure_simulation(config: Dict[str, Any]):
    """
    应用新配置

    配置通过验证后替换当前仿真（旅行者、箱子、时间线全部重建）。
    运行中不能修改配置，需要先暂停。
    """
    new_config, errors, warnings = validate_simulation_request(config)
    if new_config is None:
        return APIResponse(
            success=False,
            message="配置验证失败",
            data={"errors": errors, "warnings": warnings}
        )

    try:
        session.engine.configure(new_config)
    except SimulationStateError as e:
        return APIResponse(success=False, message=str(e))

    return APIResponse(
        success=True,
        message="配置已应用",
        data={
            "config": new_config.model_dump(mode="json"),
            "warnings": warnings,
        }
    )


@router.post("/start", response_model=APIResponse)
async def start_simulation():
    """
    开始/继续仿真

    首次开始时生成初始旅行者；已完成的仿真需要先重置
    """
    engine = session.engine
    if not engine.start():
        return APIResponse(
            success=False,
            message="仿真已完成，请先重置"
        )

    session.launch()
    return APIResponse(
        success=True,
        message="仿真运行中",
        data=engine.get_status()
    )


@router.post("/stop", response_model=APIResponse)
async def stop_simulation():
    """
    暂停仿真

    保留所有状态，可再次开始
    """
    await session.halt()
    return APIResponse(
        success=True,
        message="仿真已暂停",
        data=session.engine.get_status()
    )


@router.post("/reset", response_model=APIResponse)
async def reset_simulation():
    """
    重置仿真

    清空旅行者、事件和时间线，位置保持不变
    """
    await session.halt()
    session.engine.reset()
    return APIResponse(
        success=True,
        message="仿真已重置",
        data=session.engine.get_status()
    )


@router.post("/travelers", response_model=APIResponse)
async def add_traveler():
    """
    添加旅行者

    新旅行者在起点出发，延迟 start_delay 后开始取货；仿真结束后需先重置
    """
    try:
        traveler_id = session.engine.add_traveler()
    except SimulationStateError as e:
        return APIResponse(success=False, message=str(e))

    return APIResponse(
        success=True,
        message=f"已添加旅行者 {traveler_id}",
        data={"traveler_id": traveler_id}
    )


@router.post("/speed", response_model=APIResponse)
async def set_speed(request: SpeedRequest):
    """
    设置速度倍率

    从下一个时钟步开始生效
    """
    session.engine.set_speed(request.speed_multiplier)
    return APIResponse(
        success=True,
        message=f"速度倍率设为 {request.speed_multiplier}x",
        data={"speed_multiplier": request.speed_multiplier}
    )


@router.post("/step", response_model=APIResponse)
async def step_simulation(request: Optional[StepRequest] = None):
    """
    单步执行

    仅在仿真未运行时可用（调试用）
    """
    engine = session.engine
    if engine.is_running:
        return APIResponse(
            success=False,
            message="仿真运行中，请先暂停"
        )

    steps = request.steps if request else 1
    processed = 0
    for _ in range(steps):
        processed += engine.step()

    return APIResponse(
        success=True,
        message=f"执行 {steps} 步，处理 {processed} 个事件",
        data={
            "events_processed": processed,
            "snapshot": engine.snapshot().model_dump(mode="json"),
        }
    )


@router.get("/snapshot", response_model=APIResponse)
async def get_snapshot():
    """
    获取当前快照

    包含活跃旅行者插值坐标、处理站状态和箱子库存
    """
    return APIResponse(
        success=True,
        message="获取快照成功",
        data=session.engine.snapshot().model_dump(mode="json")
    )


@router.get("/status", response_model=APIResponse)
async def get_simulation_status():
    """
    获取运行状态
    """
    engine = session.engine
    return APIResponse(
        success=True,
        message=f"仿真状态: {engine.status.value}",
        data=engine.get_status()
    )
