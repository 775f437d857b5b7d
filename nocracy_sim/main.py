"""
Nocracy 社会仿真服务的入口模块（FastAPI）。

负责应用级生命周期管理与路由挂载：

- 启动时创建应用持有的引擎实例（读取 ``config/world_settings.yaml``）；
- 若设置 ``NOCRACY_AUTOSTART``，启动后立即按配置频率开始推进 tick；
- 关闭时停止调度器并取消在途通知任务。

重要环境变量：
- NOCRACY_LOG_LEVEL：根日志级别（默认 INFO）。
- NOCRACY_AUTOSTART：设为 1/true/yes/on 时在启动后自动运行仿真。
- NOCRACY_TELEGRAM_TOKEN / NOCRACY_TELEGRAM_CHAT_ID：同时设置时启用 Telegram 通知。
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.endpoints import router as simulation_router
from .core.engine_factory import dispose_engine, get_engine

logging.basicConfig(
    level=os.getenv("NOCRACY_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _flag(name: str) -> bool:
    return os.getenv(name, "").lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期：启动时创建引擎，关闭时停止调度并释放资源。"""
    engine = get_engine()
    if _flag("NOCRACY_AUTOSTART"):
        engine.start()
        logger.info("Simulation auto-started at %.2f Hz", engine.tick_rate)

    yield

    await dispose_engine()
    logger.info("Simulation engine disposed")


app = FastAPI(title="Nocracy Simulator", version="0.1.0", lifespan=lifespan)
app.include_router(simulation_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict:
    """提供健康检查端点，供运行时监控使用。"""
    return {"status": "ok"}
