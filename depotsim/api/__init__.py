"""
API模块包
包含所有REST API端点的定义

模块说明:
- config.py: 配置与拓扑接口
- simulation.py: 仿真控制接口
- results.py: 时间线与KPI接口
"""

from depotsim.api import config, simulation, results

__all__ = ["config", "simulation", "results"]
