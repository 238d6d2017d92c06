"""
资源池单元测试
测试ResourcePool的箱子库存与处理站状态

测试内容:
- 预约/激活/释放状态循环
- 箱子库存不为负、处理数不超过总数
- 负载计算与等待队列
- 处理站增删与重定位
- 使用记录与利用率
"""

import pytest

from depotsim.models.config_model import Location
from depotsim.models.enums import StationState
from depotsim.core.resource_pool import ResourcePool


def create_pool(num_boxes: int = 5, num_stations: int = 2) -> ResourcePool:
    """创建测试用资源池"""
    locations = [
        Location(id=f"S{i + 1}", x=100.0 * (i + 1), y=300.0)
        for i in range(num_stations)
    ]
    return ResourcePool(num_boxes, locations)


class TestStationStates:
    """处理站状态测试"""

    def test_claim_activate_release(self):
        """测试完整状态循环"""
        pool = create_pool()
        station = pool.get_station("S1")

        assert pool.claim("S1", 1)
        assert station.state == StationState.CLAIMED
        assert station.holder == 1

        assert pool.activate("S1", 1, now=100)
        assert station.state == StationState.ACTIVE
        assert station.current_occupant == 1

        pool.release("S1", now=300)
        assert station.state == StationState.AVAILABLE
        assert station.claimed_by is None
        assert station.current_occupant is None
        assert station.boxes_processed == 1

    def test_claim_taken_station_fails(self):
        """测试已被预约的处理站不能再次预约"""
        pool = create_pool()
        assert pool.claim("S1", 1)
        assert not pool.claim("S1", 2)
        assert pool.get_station("S1").claimed_by == 1

    def test_claim_unknown_station(self):
        """测试预约不存在的处理站"""
        pool = create_pool()
        assert not pool.claim("S9", 1)

    def test_activate_by_other_traveler_is_noop(self):
        """测试非预约者激活为空操作"""
        pool = create_pool()
        pool.claim("S1", 1)

        assert not pool.activate("S1", 2)
        station = pool.get_station("S1")
        assert station.state == StationState.CLAIMED
        assert station.current_occupant is None

    def test_activate_unclaimed_station_fails(self):
        """测试未预约的处理站不能激活"""
        pool = create_pool()
        assert not pool.activate("S1", 1)
        assert pool.get_station("S1").is_available

    def test_release_claimed_does_not_count(self):
        """测试释放仅预约未处理的站不计入处理数"""
        pool = create_pool()
        pool.claim("S1", 1)
        pool.release("S1")

        station = pool.get_station("S1")
        assert station.is_available
        assert station.boxes_processed == 0

    def test_available_station_ids(self):
        """测试空闲处理站列表"""
        pool = create_pool(num_stations=3)
        pool.claim("S2", 1)
        assert pool.get_available_station_ids() == ["S1", "S3"]

    def test_release_claims_of(self):
        """测试释放某旅行者持有的处理站"""
        pool = create_pool(num_stations=3)
        pool.claim("S1", 1)
        pool.claim("S3", 2)

        released = pool.release_claims_of(1)

        assert released == ["S1"]
        assert pool.get_station("S1").is_available
        assert pool.get_station("S3").holder == 2


class TestBoxInventory:
    """箱子库存测试"""

    def test_take_until_empty(self):
        """测试库存取完后不再取出"""
        pool = create_pool(num_boxes=2)
        assert pool.take_box()
        assert pool.take_box()
        assert not pool.take_box()
        assert pool.available_boxes == 0
        assert not pool.has_boxes()

    def test_return_box(self):
        """测试放回箱子"""
        pool = create_pool(num_boxes=2)
        pool.take_box()
        pool.return_box()
        assert pool.available_boxes == 2

    def test_return_box_never_exceeds_total(self):
        """测试放回不会超过总数"""
        pool = create_pool(num_boxes=2)
        pool.return_box()
        assert pool.available_boxes == 2

        pool.take_box()
        pool.record_processed()
        pool.return_box()
        assert pool.available_boxes == 1

    def test_record_processed_capped(self):
        """测试处理数不超过箱子总数"""
        pool = create_pool(num_boxes=1)
        assert pool.record_processed() == 1
        assert pool.record_processed() == 1
        assert pool.all_processed()


class TestLoadAndQueue:
    """负载与等待队列测试"""

    def test_load_components(self):
        """测试负载 = 忙碌 + 排队 + 在途"""
        pool = create_pool()
        assert pool.get_load("S1") == 0

        pool.claim("S1", 1)
        assert pool.get_load("S1") == 1

        pool.enqueue("S1", 2)
        assert pool.get_load("S1") == 2

        pool.mark_en_route("S1", 3)
        assert pool.get_load("S1") == 3
        assert pool.get_en_route_count("S1") == 1

        pool.clear_en_route(3)
        assert pool.get_load("S1") == 2
        assert pool.get_loads() == {"S1": 2, "S2": 0}

    def test_queue_fifo(self):
        """测试等待队列先进先出"""
        pool = create_pool()
        pool.enqueue("S1", 4)
        pool.enqueue("S1", 2)
        pool.enqueue("S1", 4)

        assert pool.get_queue_length("S1") == 2
        assert pool.dequeue_next("S1") == 4
        assert pool.dequeue_next("S1") == 2
        assert pool.dequeue_next("S1") is None

    def test_remove_from_queues(self):
        """测试从所有队列移除旅行者"""
        pool = create_pool()
        pool.enqueue("S1", 1)
        pool.enqueue("S2", 1)
        pool.enqueue("S2", 2)

        pool.remove_from_queues(1)

        assert pool.get_queue_length("S1") == 0
        assert list(pool.get_station("S2").queue) == [2]


class TestTopologyChanges:
    """处理站增删与重定位测试"""

    def test_add_station(self):
        """测试添加处理站"""
        pool = create_pool(num_stations=1)
        pool.add_station(Location(id="S2", x=10, y=20))

        assert pool.get_station_ids() == ["S1", "S2"]
        assert pool.usage_log["S2"] == []

    def test_add_duplicate_station(self):
        """测试重复添加处理站"""
        pool = create_pool(num_stations=1)
        with pytest.raises(ValueError):
            pool.add_station(Location(id="S1", x=0, y=0))

    def test_remove_station(self):
        """测试移除处理站"""
        pool = create_pool(num_stations=2)
        pool.remove_station("S2")
        assert pool.get_station_ids() == ["S1"]
        with pytest.raises(ValueError):
            pool.remove_station("S2")

    def test_relocate_station(self):
        """测试移动处理站"""
        pool = create_pool()
        pool.relocate_station("S1", 500, 600)
        assert pool.get_station("S1").point.as_tuple() == (500, 600)

    def test_relocate_unknown_station(self):
        """测试移动不存在的处理站"""
        pool = create_pool()
        with pytest.raises(ValueError):
            pool.relocate_station("S9", 0, 0)


class TestUsageStats:
    """使用记录与利用率测试"""

    def test_utilization(self):
        """测试利用率计算"""
        pool = create_pool()
        pool.claim("S1", 1)
        pool.activate("S1", 1, now=0)
        pool.release("S1", now=100)

        stats = {s["station_id"]: s for s in pool.get_station_stats(200, 200)}

        assert stats["S1"]["work_time"] == pytest.approx(100)
        assert stats["S1"]["idle_time"] == pytest.approx(100)
        assert stats["S1"]["utilization_rate"] == pytest.approx(0.5)
        assert stats["S1"]["boxes_served"] == 1
        assert stats["S2"]["utilization_rate"] == 0

    def test_open_usage_counts_until_now(self):
        """测试进行中的使用按当前时间计"""
        pool = create_pool()
        pool.claim("S1", 1)
        pool.activate("S1", 1, now=50)

        utilization = pool.get_station_utilization(100, now=100)
        assert utilization["S1"] == pytest.approx(0.5)

    def test_reset(self):
        """测试重置资源池"""
        pool = create_pool(num_boxes=2)
        pool.take_box()
        pool.claim("S1", 1)
        pool.activate("S1", 1)
        pool.enqueue("S2", 2)
        pool.mark_en_route("S2", 3)

        pool.reset(initial_boxes=4)

        assert pool.initial_boxes == 4
        assert pool.available_boxes == 4
        assert pool.total_processed == 0
        assert all(st.is_available for st in pool.stations.values())
        assert pool.get_loads() == {"S1": 0, "S2": 0}
        assert pool.usage_log == {"S1": [], "S2": []}
