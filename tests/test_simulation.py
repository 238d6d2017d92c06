"""
仿真引擎集成测试
测试SimulationEngine的完整运行流程

测试内容:
- 基本场景（单旅行者、箱子不足、多旅行者竞争、运行中重置）
- 运行不变量（箱子守恒、单一占用、时间单调、结束只触发一次）
- 运行控制（开始/暂停/单步/调速/重定位/重新配置）
- 负载感知与轮询策略
- 可复现性
"""

import asyncio

import pytest

from depotsim.models.config_model import SimulationConfig
from depotsim.models.enums import EventType, SimulationStatus, StageKind
from depotsim.core.driver import SimulationDriver, VirtualClock
from depotsim.core.simulation_engine import SimulationEngine, SimulationStateError


def create_engine(**overrides) -> SimulationEngine:
    """创建测试用引擎（固定随机种子）"""
    params = {"random_seed": 42}
    params.update(overrides)
    return SimulationEngine(SimulationConfig(**params))


def run_checked(engine: SimulationEngine, max_ticks: int = 100000) -> int:
    """
    逐步运行到结束，每步检查不变量

    Returns:
        执行的时钟步数
    """
    assert engine.start()
    ticks = 0
    last_time = engine.current_time
    while engine.is_running and ticks < max_ticks:
        engine.tick()
        ticks += 1

        assert engine.current_time >= last_time
        last_time = engine.current_time
        assert engine.conservation_holds()

        for station in engine.pool.stations.values():
            processing = [
                t for t in engine.travelers.values()
                if t.stage.kind == StageKind.PROCESSING_AT_STATION
                and t.stage.station_id == station.id
            ]
            assert len(processing) <= 1
            if processing:
                assert station.current_occupant == processing[0].id
    return ticks


class TestScenarios:
    """基本场景测试"""

    def test_single_traveler_single_box(self):
        """测试1名旅行者、1个箱子、1个处理站完成一次完整循环"""
        engine = create_engine(num_travelers=1, num_boxes=1, num_stations=1)
        run_checked(engine)

        assert engine.status == SimulationStatus.COMPLETED
        assert engine.pool.total_processed == 1
        assert engine.travelers == {}
        assert len(engine.state.retired) == 1
        assert engine.state.retired[0].boxes_processed == 1

        names = [a.name for a in engine.collector.get_activities_by_traveler(1)]
        assert names == [
            "Travel to C",
            "Collecting Box",
            "Travel to S1",
            "Processing at S1",
            "Return to A",
        ]
        assert all(a.is_completed for a in engine.collector.get_all_activities())

    def test_two_travelers_one_box(self):
        """测试2名旅行者、1个箱子：只有一人处理，另一人空手返回"""
        engine = create_engine(num_travelers=2, num_boxes=1, num_stations=1)
        run_checked(engine)

        assert engine.status == SimulationStatus.COMPLETED
        assert engine.pool.total_processed == 1

        retired = {t.id: t for t in engine.state.retired}
        assert sorted(t.boxes_processed for t in retired.values()) == [0, 1]

        idle_id = next(t.id for t in retired.values() if t.boxes_processed == 0)
        station_kinds = {
            StageKind.MOVING_TO_STATION.value,
            StageKind.WAITING_AT_STATION.value,
            StageKind.PROCESSING_AT_STATION.value,
        }
        idle_kinds = {a.kind for a in engine.collector.get_activities_by_traveler(idle_id)}
        assert not idle_kinds & station_kinds

    def test_three_travelers_two_stations(self):
        """测试3名旅行者、5个箱子、2个处理站（预约制）"""
        engine = create_engine(
            num_travelers=3, num_boxes=5, num_stations=2, station_policy="claim"
        )
        run_checked(engine)

        assert engine.status == SimulationStatus.COMPLETED
        assert engine.pool.total_processed == 5
        assert sum(t.boxes_processed for t in engine.state.retired) == 5
        assert sum(s.boxes_processed for s in engine.pool.stations.values()) == 5

        processing = [
            a for a in engine.collector.get_all_activities()
            if a.kind == StageKind.PROCESSING_AT_STATION.value
        ]
        for station_id in ("S1", "S2"):
            spans = sorted(
                (a.start_time, a.end_time) for a in processing if a.station_id == station_id
            )
            for (_, prev_end), (next_start, _) in zip(spans, spans[1:]):
                assert next_start >= prev_end

    def test_reset_mid_run(self):
        """测试运行中重置后回到初始状态"""
        engine = create_engine(num_travelers=3, num_boxes=5, num_stations=2)
        engine.start()
        for _ in range(60):
            engine.tick()
        assert engine.current_time > 0

        engine.reset()

        assert engine.status == SimulationStatus.PENDING
        assert engine.current_time == 0
        assert engine.travelers == {}
        assert engine.state.retired == []
        assert len(engine.state.queue) == 0
        assert engine.pool.available_boxes == 5
        assert engine.pool.total_processed == 0
        assert all(st.is_available for st in engine.pool.stations.values())
        assert engine.collector.get_all_activities() == []
        assert engine.state.next_traveler_id == 1

        run_checked(engine)
        assert engine.pool.total_processed == 5


class TestInvariants:
    """运行不变量测试"""

    @pytest.mark.parametrize("policy", ["claim", "load"])
    @pytest.mark.parametrize("travelers,boxes,stations", [
        (1, 3, 1),
        (4, 8, 2),
        (6, 12, 3),
        (5, 2, 1),
    ])
    def test_terminates_with_all_processed(self, policy, travelers, boxes, stations):
        """测试各种规模下都能结束且全部处理"""
        engine = create_engine(
            num_travelers=travelers,
            num_boxes=boxes,
            num_stations=stations,
            station_policy=policy,
        )
        run_checked(engine)

        assert engine.status == SimulationStatus.COMPLETED
        assert engine.pool.total_processed == boxes
        assert engine.active_traveler_count() == 0

    def test_completion_published_once(self):
        """测试结束通知只发布一次"""
        engine = create_engine(num_travelers=2, num_boxes=2, num_stations=1)
        completions = []
        engine.subscribe(
            lambda n: completions.append(n) if n.kind == EventType.SIMULATION_COMPLETE else None
        )
        run_checked(engine)

        assert len(completions) == 1
        assert completions[0].traveler_id == 0
        assert engine.tick() == 0
        assert engine.step() == 0
        assert not engine.state.completion.check(engine.pool.total_processed, 0)

    def test_completion_waits_for_delay(self):
        """测试结束发生在最后一名旅行者返回之后"""
        engine = create_engine(num_travelers=1, num_boxes=1, num_stations=1, completion_delay=500)
        run_checked(engine)

        last_return = engine.state.retired[-1]
        return_activity = engine.collector.get_activities_by_traveler(last_return.id)[-1]
        assert engine.current_time >= return_activity.end_time + 500

    def test_notification_times_monotonic(self):
        """测试通知时间单调不减"""
        engine = create_engine(num_travelers=4, num_boxes=6, num_stations=2, station_policy="load")
        channel = engine.open_channel()
        run_checked(engine)

        times = [n.time for n in channel.drain()]
        assert times == sorted(times)
        seqs = [e.id for e in engine.collector.get_all_events()]
        assert len(seqs) == len(set(seqs))


class TestRunControl:
    """运行控制测试"""

    def test_start_spawns_travelers(self):
        """测试开始时生成初始旅行者"""
        engine = create_engine(num_travelers=3)
        assert engine.status == SimulationStatus.PENDING
        assert engine.start()
        assert engine.is_running
        assert sorted(engine.travelers) == [1, 2, 3]
        assert len(engine.state.queue) == 3

    def test_start_twice(self):
        """测试重复开始不会重复生成旅行者"""
        engine = create_engine(num_travelers=2)
        engine.start()
        engine.stop()
        engine.start()
        assert len(engine.travelers) == 2

    def test_start_after_completion_requires_reset(self):
        """测试完成后需要重置才能重新开始"""
        engine = create_engine(num_travelers=1, num_boxes=1, num_stations=1)
        run_checked(engine)

        assert not engine.start()
        engine.reset()
        assert engine.start()

    def test_add_traveler_after_completion_check(self):
        """测试完成检测触发后不能再添加旅行者"""
        engine = create_engine(num_travelers=1, num_boxes=1, num_stations=1)
        engine.start()
        for _ in range(100000):
            if engine.state.completion.triggered:
                break
            engine.tick()
        assert engine.state.completion.triggered

        with pytest.raises(SimulationStateError):
            engine.add_traveler()

        run_checked_remaining(engine)
        assert engine.status == SimulationStatus.COMPLETED
        assert engine.active_traveler_count() == 0
        assert engine.travelers == {}

    def test_add_traveler_after_completed(self):
        """测试完成后添加旅行者需要先重置"""
        engine = create_engine(num_travelers=1, num_boxes=1, num_stations=1)
        run_checked(engine)

        with pytest.raises(SimulationStateError):
            engine.add_traveler()
        assert engine.active_traveler_count() == 0

        engine.reset()
        assert engine.add_traveler() == 1

    def test_stop_pauses(self):
        """测试暂停后时钟步不推进"""
        engine = create_engine()
        engine.start()
        engine.tick()
        engine.stop()
        paused_at = engine.current_time

        assert engine.status == SimulationStatus.PAUSED
        assert engine.tick() == 0
        assert engine.current_time == paused_at

    def test_step_while_paused(self):
        """测试暂停时单步推进"""
        engine = create_engine(tick_size=50)
        engine.step()
        assert engine.status == SimulationStatus.PAUSED
        assert engine.current_time == pytest.approx(50)
        assert len(engine.travelers) == engine.config.num_travelers

        engine.step()
        assert engine.current_time == pytest.approx(100)

    def test_speed_change_applies_next_tick(self):
        """测试速度倍率从下一步生效"""
        engine = create_engine(tick_size=50)
        engine.start()
        engine.tick()
        engine.set_speed(4.0)
        engine.tick()

        assert engine.current_time == pytest.approx(250)
        assert engine.speed_multiplier == 4.0

    def test_invalid_speed(self):
        """测试非正速度倍率"""
        engine = create_engine()
        with pytest.raises(ValueError):
            engine.set_speed(0)

    def test_add_traveler_while_running(self):
        """测试运行中添加旅行者"""
        engine = create_engine(num_travelers=1, num_boxes=4, num_stations=2)
        engine.start()
        for _ in range(20):
            engine.tick()

        new_id = engine.add_traveler()
        assert new_id == 2
        assert engine.travelers[new_id].stage.kind == StageKind.IDLE

        run_checked_remaining(engine)
        assert engine.pool.total_processed == 4
        assert {t.id for t in engine.state.retired} == {1, 2}

    def test_relocate_while_paused(self):
        """测试暂停时移动处理站"""
        engine = create_engine(num_stations=2)
        engine.relocate("S2", 600, 400)
        assert engine.state.topology.point_of("S2").as_tuple() == (600, 400)

        engine.relocate("C", 10, 20)
        assert engine.state.topology.collection.as_tuple() == (10, 20)

    def test_relocate_while_running_rejected(self):
        """测试运行中不能移动位置"""
        engine = create_engine()
        engine.start()
        with pytest.raises(SimulationStateError):
            engine.relocate("S1", 0, 0)

    def test_relocate_unknown(self):
        """测试移动未知位置"""
        engine = create_engine()
        with pytest.raises(ValueError):
            engine.relocate("S9", 0, 0)

    def test_reset_keeps_relocation(self):
        """测试重置后位置保持不变"""
        engine = create_engine()
        engine.relocate("S1", 700, 300)
        engine.reset()
        assert engine.state.topology.point_of("S1").as_tuple() == (700, 300)

    def test_configure(self):
        """测试重新配置"""
        engine = create_engine()
        engine.configure(SimulationConfig(num_travelers=1, num_boxes=2, num_stations=3))

        assert engine.config.num_boxes == 2
        assert engine.pool.get_station_ids() == ["S1", "S2", "S3"]
        run_checked(engine)
        assert engine.pool.total_processed == 2
        assert engine.collector.get_all_activities()

    def test_configure_while_running_rejected(self):
        """测试运行中不能重新配置"""
        engine = create_engine()
        engine.start()
        with pytest.raises(SimulationStateError):
            engine.configure(SimulationConfig())


class TestOutputs:
    """输出测试"""

    def test_snapshot(self):
        """测试快照内容"""
        engine = create_engine(num_travelers=2, num_boxes=3, num_stations=2)
        engine.start()
        for _ in range(10):
            engine.tick()

        snapshot = engine.snapshot()
        assert snapshot.status == SimulationStatus.RUNNING
        assert snapshot.current_time == engine.current_time
        assert len(snapshot.travelers) == 2
        assert len(snapshot.stations) == 2
        boxes = snapshot.boxes
        assert boxes.available_boxes + boxes.held_boxes + boxes.total_processed == 3

    def test_snapshot_positions_interpolated(self):
        """测试行进中的旅行者坐标在起终点之间"""
        engine = create_engine(num_travelers=1)
        engine.start()
        traveler = engine.travelers[1]
        while traveler.stage.kind != StageKind.MOVING_TO_COLLECTION:
            engine.tick()
        engine.tick()
        engine.tick()

        view = engine.get_traveler_views()[0]
        assert 55 < view.x < 135
        assert 105 < view.y < 195

    def test_kpi(self):
        """测试KPI输出"""
        engine = create_engine(num_travelers=2, num_boxes=4, num_stations=2)
        run_checked(engine)

        kpi = engine.get_kpi()
        assert kpi["output"]["total_processed"] == 4
        assert kpi["output"]["completion_rate"] == pytest.approx(1.0)
        assert kpi["time_efficiency"]["cycles_measured"] == 4
        assert kpi["travelers"]["traveler_count"] == 2
        assert kpi["stations"]["total_boxes_served"] == 4

    def test_export_timeline(self):
        """测试时间线导出"""
        engine = create_engine(num_travelers=1, num_boxes=1, num_stations=1)
        run_checked(engine)

        report = engine.export_timeline()
        summary = report["summary"]
        assert summary["totalActivities"] == 5
        assert summary["completedActivities"] == 5
        assert summary["inProgressActivities"] == 0
        assert summary["uniqueTravelers"] == 1
        assert report["activities"][0]["travelerName"] == "Traveler 1"


class TestReproducibility:
    """可复现性测试"""

    def test_same_seed_same_timeline(self):
        """测试相同种子得到相同时间线"""
        def timeline(seed):
            engine = create_engine(
                num_travelers=4, num_boxes=8, num_stations=3,
                station_policy="load", random_seed=seed,
            )
            SimulationDriver(engine).run_until_complete()
            return [
                (a.traveler_id, a.name, a.start_time, a.end_time)
                for a in engine.collector.get_all_activities()
            ]

        assert timeline(7) == timeline(7)

    def test_independent_engines(self):
        """测试多个引擎实例互不影响"""
        first = create_engine(num_travelers=1, num_boxes=1, num_stations=1)
        second = create_engine(num_travelers=2, num_boxes=3, num_stations=1)

        SimulationDriver(first).run_until_complete()
        assert first.status == SimulationStatus.COMPLETED
        assert second.status == SimulationStatus.PENDING
        assert second.pool.available_boxes == 3


class TestDriver:
    """驱动器测试"""

    def test_run_until_complete(self):
        """测试同步驱动到结束"""
        engine = create_engine(num_travelers=2, num_boxes=3, num_stations=2)
        ticks = SimulationDriver(engine).run_until_complete()

        assert ticks > 0
        assert engine.status == SimulationStatus.COMPLETED

    def test_tick_limit(self):
        """测试达到步数上限时停止"""
        engine = create_engine(num_travelers=2, num_boxes=3, num_stations=2)
        ticks = SimulationDriver(engine).run_until_complete(max_ticks=5)

        assert ticks == 5
        assert engine.is_running

    def test_completed_engine_not_rerun(self):
        """测试已完成的仿真不会再次运行"""
        engine = create_engine(num_travelers=1, num_boxes=1, num_stations=1)
        driver = SimulationDriver(engine)
        driver.run_until_complete()
        assert driver.run_until_complete() == 0

    def test_async_run(self):
        """测试异步驱动（步数上限与停止请求）"""
        engine = create_engine(num_travelers=2, num_boxes=3, num_stations=2)
        engine.start()
        driver = SimulationDriver(engine, tick_interval_ms=0)

        assert asyncio.run(driver.run(max_ticks=3)) == 3
        assert engine.current_time == 150

        engine.stop()
        assert asyncio.run(driver.run()) == 0

        engine.start()
        driver.run_until_complete()
        assert engine.status == SimulationStatus.COMPLETED

    def test_virtual_clock(self):
        """测试虚拟时钟"""
        clock = VirtualClock(tick_size=50, speed_multiplier=2)
        assert clock.increment == 100
        clock.set_speed(0.5)
        assert clock.increment == 25
        with pytest.raises(ValueError):
            clock.set_speed(-1)


def run_checked_remaining(engine: SimulationEngine, max_ticks: int = 100000):
    """继续运行已开始的仿真直到结束"""
    ticks = 0
    while engine.is_running and ticks < max_ticks:
        engine.tick()
        ticks += 1
        assert engine.conservation_holds()
