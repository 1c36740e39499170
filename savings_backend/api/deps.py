"""
API 依赖注入模块

提供 FastAPI 路由所需的缓存服务依赖。
"""

from fastapi import Request

from savings_backend.core.cache.factory import CacheService
from savings_backend.core.error_handlers import ServiceUnavailableError


def get_cache_service(request: Request) -> CacheService:
    """
    获取应用的缓存服务。

    Args:
        request: 当前请求

    Returns:
        CacheService: 在 create_app 中创建并保存在 app.state 上的缓存服务

    Raises:
        ServiceUnavailableError: 应用没有配置缓存服务时返回 503
    """
    service = getattr(request.app.state, "cache_service", None)
    if service is None:
        raise ServiceUnavailableError("缓存服务未初始化")
    return service
