"""
FastAPI 主入口
仓储搬运离散事件仿真系统 - Depot Box-Processing Simulation
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from depotsim.api import config, simulation, results
from depotsim.logging_config import configure_logging

VERSION = "1.0.0"

configure_logging()
logger = logging.getLogger(__name__)

# 创建FastAPI应用实例
app = FastAPI(
    title="仓储搬运仿真系统",
    description="Depot Box-Processing Simulation",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS中间件配置 - 允许跨域访问
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册API路由
app.include_router(config.router, prefix="/api/config", tags=["配置管理"])
app.include_router(simulation.router, prefix="/api/simulation", tags=["仿真控制"])
app.include_router(results.router, prefix="/api/results", tags=["结果查询"])


@app.get("/health")
async def health_check():
    """
    健康检查接口
    """
    return JSONResponse(content={
        "status": "healthy",
        "version": VERSION,
        "service": "Depot Box-Processing Simulation",
        "simulation_status": simulation.session.engine.status.value,
    })


@app.on_event("startup")
async def startup_event():
    """
    应用启动事件
    """
    logger.info("仓储搬运仿真系统启动，API文档: http://localhost:8000/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """
    应用关闭事件：停止后台驱动任务
    """
    await simulation.session.halt()
    logger.info("仓储搬运仿真系统已关闭")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("depotsim.main:app", host="0.0.0.0", port=8000, reload=True)
