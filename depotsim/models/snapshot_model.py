"""
快照模型
定义对外输出的仿真状态快照（供渲染/轮询）

模型:
- TravelerView: 旅行者视图
- StationView: 处理站视图
- BoxStatus: 箱子库存
- Snapshot: 完整快照
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from depotsim.models.enums import SimulationStatus


class TravelerView(BaseModel):
    """旅行者视图"""
    id: int = Field(description="旅行者ID")
    stage: str = Field(description="阶段")
    stage_kind: str = Field(description="阶段类型")
    station_id: Optional[str] = Field(default=None, description="关联处理站")
    location: str = Field(description="当前位置")
    x: float = Field(description="插值后的X坐标")
    y: float = Field(description="插值后的Y坐标")
    has_box: bool = Field(description="是否持有箱子")
    boxes_processed: int = Field(description="累计处理箱子数")


class StationView(BaseModel):
    """处理站视图"""
    id: str
    x: float
    y: float
    state: str
    claimed_by: Optional[int] = None
    current_occupant: Optional[int] = None
    queue_length: int = 0
    boxes_processed: int = 0


class BoxStatus(BaseModel):
    """箱子库存"""
    initial_boxes: int = Field(description="箱子总数")
    available_boxes: int = Field(description="可取箱子数")
    held_boxes: int = Field(description="旅行者持有数")
    total_processed: int = Field(description="已处理数")


class Snapshot(BaseModel):
    """仿真快照"""
    current_time: float = Field(description="当前虚拟时间")
    status: SimulationStatus = Field(description="仿真状态")
    is_running: bool = Field(description="是否运行中")
    speed_multiplier: float = Field(description="速度倍率")
    travelers: List[TravelerView] = Field(default=[], description="活跃旅行者")
    stations: List[StationView] = Field(default=[], description="处理站")
    boxes: BoxStatus = Field(description="箱子库存")
    queue_length: int = Field(default=0, description="待处理事件数")
