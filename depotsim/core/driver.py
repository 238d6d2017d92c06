"""
时钟与驱动器

- VirtualClock: 每个时钟步推进 tick_size × speed_multiplier 的虚拟时间
- SimulationDriver: 按固定真实间隔调用引擎的 tick()
  - run(): asyncio 循环（供API后台任务使用）
  - run_until_complete(): 无等待的同步循环（供测试和批量验证使用）
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from depotsim.core.simulation_engine import SimulationEngine


logger = logging.getLogger(__name__)

DEFAULT_MAX_TICKS = 200000


class VirtualClock:
    """
    虚拟时钟

    速度倍率修改后从下一个时钟步开始生效，不影响已调度事件的绝对时间

    Attributes:
        tick_size: 速度为1时每步推进的虚拟时间
        speed_multiplier: 速度倍率
    """

    def __init__(self, tick_size: float = 50.0, speed_multiplier: float = 1.0):
        self.tick_size = tick_size
        self.speed_multiplier = speed_multiplier
        self.ticks = 0

    @property
    def increment(self) -> float:
        """每步推进的虚拟时间"""
        return self.tick_size * self.speed_multiplier

    def set_speed(self, speed_multiplier: float):
        """
        设置速度倍率

        Args:
            speed_multiplier: 新倍率（必须为正数）

        Raises:
            ValueError: 倍率不为正数
        """
        if speed_multiplier <= 0:
            raise ValueError(f"速度倍率必须为正数: {speed_multiplier}")
        self.speed_multiplier = speed_multiplier

    def reset(self):
        self.ticks = 0


class SimulationDriver:
    """
    仿真驱动器

    Attributes:
        engine: 仿真引擎
        tick_interval_ms: 两次时钟步之间的真实间隔（毫秒）
    """

    def __init__(self, engine: "SimulationEngine", tick_interval_ms: Optional[int] = None):
        self.engine = engine
        if tick_interval_ms is None:
            tick_interval_ms = engine.config.tick_interval_ms
        self.tick_interval_ms = tick_interval_ms
        self._stop_requested = False

    async def run(self, max_ticks: Optional[int] = None) -> int:
        """
        异步运行，直到引擎停止、完成或达到步数上限

        Args:
            max_ticks: 最大时钟步数（None为不限）

        Returns:
            执行的时钟步数
        """
        self._stop_requested = False
        ticks = 0
        logger.info("驱动器启动（间隔 %d ms）", self.tick_interval_ms)
        while self.engine.is_running and not self._stop_requested:
            self.engine.tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            await asyncio.sleep(self.tick_interval_ms / 1000.0)
        logger.info("驱动器退出，共 %d 步，虚拟时间 %.1f", ticks, self.engine.current_time)
        return ticks

    def run_until_complete(self, max_ticks: int = DEFAULT_MAX_TICKS) -> int:
        """
        同步运行，不等待真实时间

        引擎未运行时先启动；已完成的仿真不会重新运行

        Args:
            max_ticks: 最大时钟步数

        Returns:
            执行的时钟步数
        """
        if not self.engine.is_running and not self.engine.start():
            return 0

        ticks = 0
        while self.engine.is_running and ticks < max_ticks:
            self.engine.tick()
            ticks += 1

        if self.engine.is_running:
            logger.warning("达到步数上限 %d，仿真未完成", max_ticks)
        return ticks

    def request_stop(self):
        """请求异步循环在下一步之前退出"""
        self._stop_requested = True
