"""
拓扑
起点A、取货点C和各处理站的坐标查询与重定位

设计要点:
- 处理站坐标保存在资源池的处理站对象上，拓扑只做统一查询
- 重定位只允许在仿真未运行时进行（由引擎检查）
"""

from typing import Dict, List, Optional

from depotsim.models.config_model import Location, ORIGIN_ID, COLLECTION_ID
from depotsim.models.traveler_model import Point
from depotsim.core.resource_pool import ResourcePool


class Topology:
    """
    位置拓扑

    Attributes:
        origin: 起点A坐标
        collection: 取货点C坐标
        pool: 资源池（处理站坐标来源）
    """

    def __init__(self, origin: Location, collection: Location, pool: ResourcePool):
        self.origin = Point(origin.x, origin.y)
        self.collection = Point(collection.x, collection.y)
        self.pool = pool

    def point_of(self, ref: str) -> Optional[Point]:
        """
        按位置ID查询坐标

        Args:
            ref: 位置ID（A / C / 处理站ID）

        Returns:
            坐标，未知ID返回None
        """
        if ref == ORIGIN_ID:
            return self.origin
        if ref == COLLECTION_ID:
            return self.collection
        station = self.pool.get_station(ref)
        return station.point if station else None

    def relocate(self, ref: str, x: float, y: float):
        """
        移动位置

        Args:
            ref: 位置ID
            x: 新X坐标
            y: 新Y坐标

        Raises:
            ValueError: 未知位置ID
        """
        if ref == ORIGIN_ID:
            self.origin = Point(x, y)
        elif ref == COLLECTION_ID:
            self.collection = Point(x, y)
        else:
            self.pool.relocate_station(ref, x, y)

    def get_locations(self) -> List[Location]:
        """
        获取所有位置（A、C、处理站）

        Returns:
            位置列表
        """
        locations = [
            Location(id=ORIGIN_ID, x=self.origin.x, y=self.origin.y),
            Location(id=COLLECTION_ID, x=self.collection.x, y=self.collection.y),
        ]
        for station in self.pool.stations.values():
            locations.append(Location(id=station.id, x=station.x, y=station.y))
        return locations

    def to_dict(self) -> Dict[str, dict]:
        return {
            loc.id: {"x": loc.x, "y": loc.y}
            for loc in self.get_locations()
        }
