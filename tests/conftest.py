import os

# 测试使用开发配置；必须在导入 savings_backend 之前设置
os.environ.setdefault("CONFIG_ENV", "dev")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest
import pytest_asyncio

from savings_backend.core.cache.config import CacheConfig
from savings_backend.core.cache.factory import CacheService
from savings_backend.core.cache.memory_cache import MemoryCache
from tests.helpers.fake_redis import FakeClock, FakeRedis

TEST_ROUTES = {
    "/api/customer/list": 180,
    "/api/savings-account/list": 120,
    "/api/transaction/list": 60,
    "/api/branch/list": 300,
    "/api/dashboard/summary": 60,
}


def make_cache_config(**overrides) -> CacheConfig:
    """测试用缓存配置：重连和超时都缩短到毫秒级，后台周期任务基本不会触发"""
    values = {
        "enabled": True,
        "key_prefix": "cache",
        "max_reconnect_attempts": 3,
        "connect_timeout_ms": 200,
        "operation_timeout_ms": 100,
        "retry_delay_ms": 1,
        "retry_max_delay_ms": 5,
        "health_check_interval": 3600,
        "fallback_capacity": 100,
        "fallback_ttl": 300,
        "sweep_interval": 3600,
        "routes": dict(TEST_ROUTES),
    }
    values.update(overrides)
    return CacheConfig(**values)


@pytest.fixture
def clock():
    """可手动推进的时钟"""
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    """内存版 Redis 客户端"""
    return FakeRedis(clock)


@pytest.fixture
def cache_config():
    return make_cache_config()


@pytest.fixture
def memory_cache(clock, cache_config):
    return MemoryCache(
        capacity=cache_config.fallback_capacity,
        ttl=cache_config.fallback_ttl,
        sweep_interval=cache_config.sweep_interval,
        clock=clock,
    )


@pytest_asyncio.fixture
async def cache_service(cache_config, fake_redis, memory_cache):
    """已连接到 FakeRedis 的缓存服务"""
    service = CacheService(cache_config, client_factory=lambda: fake_redis, memory=memory_cache)
    await service.init()
    yield service
    await service.shutdown()


@pytest_asyncio.fixture
async def memory_only_service(memory_cache):
    """远程缓存禁用，只使用进程内缓存的服务"""
    service = CacheService(make_cache_config(enabled=False), memory=memory_cache)
    await service.init()
    yield service
    await service.shutdown()
