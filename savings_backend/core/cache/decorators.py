"""
缓存装饰器

为写操作端点提供声明式的缓存失效。
"""

import inspect
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from fastapi import Request

logger = logging.getLogger(__name__)


def _find_request(args: tuple, kwargs: dict) -> Request | None:
    for value in (*args, *kwargs.values()):
        if isinstance(value, Request):
            return value
    return None


def _is_failure(result: Any) -> bool:
    """处理器返回 success=False 的结果时不做失效"""
    if isinstance(result, dict):
        return result.get("success") is False
    return getattr(result, "success", None) is False


def cache_invalidate(*entity_types: str):
    """缓存失效装饰器

    端点成功返回后，按实体类型清除相关缓存。失效失败只记录日志，不影响返回结果。
    被装饰的端点必须是异步函数，并且接收 Request 参数（用于取得应用的缓存服务）。

    Args:
        *entity_types: 实体类型，如 "customer"、"account"

    Returns:
        装饰器函数

    Example:
        @router.put("/customer/{customer_id}")
        @cache_invalidate("customer")
        async def update_customer(request: Request, customer_id: str, data: CustomerUpdate):
            ...
    """
    if not entity_types:
        raise ValueError("cache_invalidate 至少需要一个实体类型")

    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"@cache_invalidate 只支持异步函数 ({func.__name__})")

        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            result = await func(*args, **kwargs)

            if _is_failure(result):
                return result

            request = _find_request(args, kwargs)
            if request is None:
                logger.warning(f"{func.__name__} 没有 Request 参数，跳过缓存失效")
                return result

            service = getattr(request.app.state, "cache_service", None)
            if service is None:
                logger.warning("应用未初始化缓存服务，跳过缓存失效")
                return result

            for entity_type in entity_types:
                try:
                    await service.invalidation.invalidate(entity_type)
                except Exception as e:
                    logger.warning(f"缓存失效失败 (entity_type={entity_type}): {e}")

            return result

        return async_wrapper

    return decorator
