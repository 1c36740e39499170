"""
中间件配置模块

提供统一的中间件初始化和管理，包括：速率限制、CORS、错误处理、缓存。
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from savings_backend.core.cache.factory import CacheService
from savings_backend.core.cache.middleware import CacheMiddleware
from savings_backend.core.config import settings
from savings_backend.core.error_handlers import ErrorHandlerMiddleware
from savings_backend.core.logging import app_logger


def setup_middlewares(app: FastAPI, cache_service: CacheService) -> None:
    """
    为 FastAPI 应用配置所有中间件。

    Args:
        app: FastAPI 应用实例
        cache_service: 缓存服务（中间件使用其中的缓存管理器）

    中间件执行顺序（从外到内）：
    1. CORSMiddleware - 跨域支持
    2. ErrorHandlerMiddleware - 错误处理和请求日志
    3. SlowAPIMiddleware - 速率限制（缓存命中同样计数）
    4. CacheMiddleware - 读穿透缓存
    """
    try:
        # 1. 初始化速率限制器
        limiter = Limiter(
            key_func=get_remote_address,
            default_limits=[settings.RATE_LIMIT_DEFAULT],
            storage_uri="memory://",
            enabled=settings.RATE_LIMIT_ENABLED,
        )
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
        app_logger.debug("速率限制器已初始化")

        # 2. 添加缓存中间件
        app.add_middleware(
            CacheMiddleware,
            cache_manager=cache_service.manager,
            routes=cache_service.config.routes,
        )
        if cache_service.config.enabled:
            app_logger.info("缓存中间件已启用")
        else:
            app_logger.info("缓存中间件已添加（远程缓存禁用，使用进程内缓存）")

        # 3. 添加速率限制中间件
        app.add_middleware(SlowAPIMiddleware)
        app_logger.debug("速率限制中间件已添加")

        # 4. 添加错误处理中间件
        app.add_middleware(ErrorHandlerMiddleware)

        # 5. 添加 CORS 中间件
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Cache", "X-Request-ID"],
        )
        app_logger.debug("CORS 中间件已配置")

        app_logger.info("中间件配置完成")

    except Exception as e:
        app_logger.error(f"中间件配置失败: {str(e)}")
        raise
