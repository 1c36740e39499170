"""
缓存模块

分层读穿透缓存：优先使用 Redis 远程缓存，不可用或被禁用时自动降级到有界的进程内缓存。
缓存问题不会导致请求失败。
"""

from savings_backend.core.cache.config import CacheConfig, create_cache_config_from_settings
from savings_backend.core.cache.connection import ConnectionManager
from savings_backend.core.cache.decorators import cache_invalidate
from savings_backend.core.cache.factory import CacheService, create_cache_service
from savings_backend.core.cache.invalidation import ENTITY_PATTERNS, InvalidationRouter
from savings_backend.core.cache.logger import CacheLogger, get_cache_logger
from savings_backend.core.cache.manager import CacheManager
from savings_backend.core.cache.memory_cache import MemoryCache
from savings_backend.core.cache.metrics import CacheMetrics, get_cache_metrics
from savings_backend.core.cache.middleware import CacheMiddleware
from savings_backend.core.cache.redis_client import RedisClient
from savings_backend.core.cache.state import ConnectionEvent, ConnectionState
from savings_backend.core.cache.stats import CacheStats

__all__ = [
    "CacheConfig",
    "CacheManager",
    "CacheMiddleware",
    "CacheService",
    "CacheStats",
    "ConnectionEvent",
    "ConnectionManager",
    "ConnectionState",
    "ENTITY_PATTERNS",
    "InvalidationRouter",
    "MemoryCache",
    "RedisClient",
    "create_cache_config_from_settings",
    "create_cache_service",
    "cache_invalidate",
    "CacheLogger",
    "get_cache_logger",
    "CacheMetrics",
    "get_cache_metrics",
]
