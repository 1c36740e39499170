"""
Savings Back Office API

FastAPI 应用主入口文件，负责应用初始化、缓存服务生命周期、路由注册、中间件配置等。
"""

import sys
import traceback
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI

from savings_backend.api import api_router
from savings_backend.api.deps import get_cache_service
from savings_backend.core.cache.config import CacheConfig
from savings_backend.core.cache.factory import CacheService, create_cache_service
from savings_backend.core.cache.state import ConnectionState
from savings_backend.core.config import settings
from savings_backend.core.config_manager import config_manager
from savings_backend.core.error_handlers import setup_exception_handlers
from savings_backend.core.logging import app_logger, setup_cache_logging
from savings_backend.core.middleware import setup_middlewares
from savings_backend.models.schemas import CacheHealth, HealthResponse

# 加载环境变量
load_dotenv()
app_logger.debug("环境变量已加载")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理

    启动时连接缓存服务（失败时以进程内缓存运行），关闭时等待后台写入并断开连接
    """
    app_logger.info(f"应用启动: {settings.APP_NAME} v{settings.APP_VERSION}")
    app_logger.info(f"配置环境: {config_manager.get_current_env()}")

    service: CacheService = app.state.cache_service
    connected = await service.init()
    app_logger.info(f"缓存层: {'remote' if connected else 'memory'}")

    yield

    await service.shutdown()
    app_logger.info("应用已关闭")


def create_app(cache_config: CacheConfig | None = None, cache_service: CacheService | None = None) -> FastAPI:
    """创建 FastAPI 应用

    Args:
        cache_config: 缓存配置（可选，默认从应用配置加载）
        cache_service: 预先构建的缓存服务（可选，测试时注入）

    Returns:
        FastAPI: 应用实例
    """
    setup_cache_logging(level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)

    if cache_service is None:
        cache_service = create_cache_service(cache_config)

    app = FastAPI(
        title=settings.APP_NAME,
        description="储蓄业务后台服务",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.cache_service = cache_service

    # 设置中间件
    setup_middlewares(app, cache_service)

    # 设置异常处理器
    setup_exception_handlers(app)

    # 注册 API 路由
    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        """根路径端点"""
        return {"message": f"{settings.APP_NAME} API"}

    @app.get("/health", response_model=HealthResponse, response_model_by_alias=True)
    async def health_check(service: CacheService = Depends(get_cache_service)):
        """健康检查端点

        远程缓存启用但未连接时返回 degraded，服务本身仍可正常处理请求。
        """
        remote_healthy = await service.connection.health_check() if service.config.enabled else None
        state = service.connection.state

        status = "healthy"
        if service.config.enabled and state is not ConnectionState.CONNECTED:
            status = "degraded"

        return HealthResponse(
            status=status,
            version=settings.APP_VERSION,
            cache=CacheHealth(
                enabled=service.config.enabled,
                state=state.value,
                backing_store=service.manager.active_tier,
                remote_healthy=remote_healthy,
            ),
        )

    return app


# 创建 FastAPI 应用实例
app = create_app()


if __name__ == "__main__":
    """直接运行此文件时的入口点"""
    exit_code = 0
    try:
        app_logger.info(f"服务器启动: http://{settings.HOST}:{settings.PORT}")
        uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level="critical")
    except Exception as e:
        app_logger.error(f"主程序异常: {str(e)}")
        app_logger.error(traceback.format_exc())
        exit_code = 1
    finally:
        sys.exit(exit_code)
