"""
全局配置模型
定义仿真系统的全局配置参数

配置项:
- 数量配置（旅行者/箱子/处理站）
- 拓扑配置（起点A、取货点C、各处理站坐标）
- 时间参数（时钟步长、速度倍率、取货/处理时长）
- 策略配置（处理站选择策略、平局处理）
"""

import logging
import os
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, computed_field

from depotsim.models.enums import StationPolicy, TieBreak


logger = logging.getLogger(__name__)

ORIGIN_ID = "A"
COLLECTION_ID = "C"

# 自动生成处理站时的布局参数
STATION_ROW_START_X = 195.0
STATION_ROW_SPACING = 100.0
STATION_ROW_Y = 305.0


class Location(BaseModel):
    """
    位置模型

    Attributes:
        id: 位置ID（A / C / S1...）
        x: X坐标
        y: Y坐标
    """
    id: str = Field(min_length=1, description="位置ID")
    x: float = Field(description="X坐标")
    y: float = Field(description="Y坐标")

    def as_tuple(self) -> Tuple[float, float]:
        """返回 (x, y) 元组"""
        return self.x, self.y


def generate_station_locations(count: int) -> List[Location]:
    """
    按行生成处理站位置

    Args:
        count: 处理站数量

    Returns:
        处理站位置列表（S1, S2, ...）
    """
    return [
        Location(
            id=f"S{i + 1}",
            x=STATION_ROW_START_X + i * STATION_ROW_SPACING,
            y=STATION_ROW_Y,
        )
        for i in range(count)
    ]


class SimulationConfig(BaseModel):
    """
    全局配置模型

    包含仿真系统的所有可配置参数。时间单位均为虚拟时间单位
    （与原始界面一致，1个单位约等于1毫秒）。

    Attributes:
        num_travelers: 初始旅行者数量（1-10）
        num_boxes: 箱子总数（1-20）
        num_stations: 处理站数量（1-8）
        origin: 起点A
        collection_point: 取货点C
        stations: 显式指定的处理站位置（为空则自动生成）
        speed_multiplier: 速度倍率
        tick_interval_ms: 每个时钟步的真实时间间隔（毫秒）
        tick_size: 速度为1时每步推进的虚拟时间
        base_speed: 旅行者基础速度
        travel_time_scale: 路程时间缩放系数
        min_travel_time: 最短路程时间
        collection_duration: 取货时长
        processing_duration: 处理时长
        start_delay: 新旅行者的出发延迟
        completion_delay: 检测到完成后的结束延迟
        station_policy: 处理站选择策略
        tie_break: 负载相同时的选择方式
        switch_threshold: 负载感知策略下的换站阈值
        random_seed: 随机种子
    """

    # 数量配置
    num_travelers: int = Field(default=2, ge=1, le=10, description="初始旅行者数量")
    num_boxes: int = Field(default=5, ge=1, le=20, description="箱子总数")
    num_stations: int = Field(default=2, ge=1, le=8, description="处理站数量")

    # 拓扑配置
    origin: Location = Field(
        default_factory=lambda: Location(id=ORIGIN_ID, x=55, y=105),
        description="起点A"
    )
    collection_point: Location = Field(
        default_factory=lambda: Location(id=COLLECTION_ID, x=135, y=195),
        description="取货点C"
    )
    stations: List[Location] = Field(
        default_factory=list,
        description="处理站位置（为空则按数量自动生成）"
    )

    # 时钟参数
    speed_multiplier: float = Field(default=1.0, gt=0, description="速度倍率")
    tick_interval_ms: int = Field(default=50, ge=1, description="时钟步真实间隔（毫秒）")
    tick_size: float = Field(default=50.0, gt=0, description="每步虚拟时间")

    # 运动与作业时长
    base_speed: float = Field(default=2.0, gt=0, description="基础速度")
    travel_time_scale: float = Field(default=20.0, gt=0, description="路程时间缩放系数")
    min_travel_time: float = Field(default=100.0, gt=0, description="最短路程时间")
    collection_duration: float = Field(default=1000.0, ge=0, description="取货时长")
    processing_duration: float = Field(default=2000.0, ge=0, description="处理时长")
    start_delay: float = Field(default=100.0, ge=0, description="出发延迟")
    completion_delay: float = Field(default=100.0, ge=0, description="结束延迟")

    # 策略配置
    station_policy: StationPolicy = Field(
        default=StationPolicy.CLAIM_BASED,
        description="处理站选择策略"
    )
    tie_break: TieBreak = Field(default=TieBreak.RANDOM, description="平局处理方式")
    switch_threshold: int = Field(default=2, ge=1, description="换站负载差阈值")
    random_seed: Optional[int] = Field(
        default=None,
        description="随机种子（用于复现结果，None为随机）"
    )

    @computed_field
    @property
    def virtual_time_per_tick(self) -> float:
        """
        每个时钟步推进的虚拟时间

        Returns:
            tick_size × speed_multiplier
        """
        return self.tick_size * self.speed_multiplier

    def get_station_locations(self) -> List[Location]:
        """
        获取处理站位置列表

        显式配置优先，否则按 num_stations 自动生成

        Returns:
            处理站位置列表
        """
        if self.stations:
            return [loc.model_copy() for loc in self.stations]
        return generate_station_locations(self.num_stations)

    def validate_config(self) -> tuple:
        """
        验证配置有效性

        Returns:
            (是否有效, 错误列表, 警告列表)
        """
        errors = []
        warnings = []

        locations = self.get_station_locations()
        station_ids = [loc.id for loc in locations]
        if len(set(station_ids)) != len(station_ids):
            errors.append("处理站ID不能重复")
        for reserved in (ORIGIN_ID, COLLECTION_ID):
            if reserved in station_ids:
                errors.append(f"处理站ID不能使用保留ID '{reserved}'")
        if self.stations and len(self.stations) != self.num_stations:
            warnings.append(
                f"显式配置了 {len(self.stations)} 个处理站，与 num_stations="
                f"{self.num_stations} 不一致，以显式配置为准"
            )

        if self.origin.as_tuple() == self.collection_point.as_tuple():
            warnings.append("起点A与取货点C重合")

        if self.num_travelers > self.num_boxes:
            warnings.append("旅行者数量多于箱子数量，部分旅行者将空手返回")

        if (
            self.station_policy == StationPolicy.CLAIM_BASED
            and self.num_travelers > len(locations)
        ):
            warnings.append("预约制下旅行者多于处理站，取货时无空闲站的旅行者将放回箱子并返回起点")

        return len(errors) == 0, errors, warnings

    @classmethod
    def from_yaml(cls, path: str) -> "SimulationConfig":
        """
        从YAML文件加载配置

        Args:
            path: YAML文件路径

        Returns:
            配置对象
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    class Config:
        json_schema_extra = {
            "example": {
                "num_travelers": 2,
                "num_boxes": 5,
                "num_stations": 2,
                "origin": {"id": "A", "x": 55, "y": 105},
                "collection_point": {"id": "C", "x": 135, "y": 195},
                "speed_multiplier": 1.0,
                "station_policy": "claim",
                "tie_break": "random",
                "random_seed": 42
            }
        }


# 默认配置文件位置（随包发布的 depotsim/config/）
DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "config", "default_config.yaml"
)


def load_default_config(path: Optional[str] = None) -> SimulationConfig:
    """
    加载默认配置

    配置文件不存在或无法解析时使用内置默认值

    Args:
        path: YAML文件路径（为空则使用 DEFAULT_CONFIG_PATH）

    Returns:
        配置对象
    """
    path = path or DEFAULT_CONFIG_PATH
    if not os.path.exists(path):
        return SimulationConfig()
    try:
        return SimulationConfig.from_yaml(path)
    except (yaml.YAMLError, ValidationError) as e:
        logger.warning("默认配置文件 %s 无效，使用内置默认值: %s", path, e)
        return SimulationConfig()
