"""
缓存服务工厂

CacheService 把连接管理器、远程适配器、进程内缓存、缓存管理器和失效路由组装在一起，
由应用在 lifespan 中调用 init()/shutdown()，并保存在 app.state.cache_service 上。
"""

import logging

from savings_backend.core.cache.config import CacheConfig, create_cache_config_from_settings
from savings_backend.core.cache.connection import ClientFactory, ConnectionManager
from savings_backend.core.cache.invalidation import InvalidationRouter
from savings_backend.core.cache.manager import CacheManager
from savings_backend.core.cache.memory_cache import MemoryCache
from savings_backend.core.cache.redis_client import RedisClient

logger = logging.getLogger(__name__)


class CacheService:
    """分层缓存服务

    每个实例拥有独立的连接、进程内缓存和统计，测试可以为每个用例单独创建。
    """

    def __init__(self, config: CacheConfig, client_factory: ClientFactory | None = None, memory: MemoryCache | None = None):
        """组装缓存组件

        Args:
            config: 缓存配置
            client_factory: Redis 客户端工厂（可选，测试时注入假客户端）
            memory: 进程内缓存（可选，测试时可注入自定义时钟）
        """
        self.config = config
        self.connection = ConnectionManager(config, client_factory=client_factory)
        self.remote = RedisClient(self.connection, config)
        self.memory = memory or MemoryCache(
            capacity=config.fallback_capacity, ttl=config.fallback_ttl, sweep_interval=config.sweep_interval
        )
        self.manager = CacheManager(self.connection, self.remote, self.memory, key_prefix=config.key_prefix)
        self.invalidation = InvalidationRouter(self.manager)
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def init(self) -> bool:
        """启动缓存服务：连接远程缓存并启动进程内缓存的清理任务

        远程缓存连接失败不会抛出异常，服务以进程内缓存继续运行。

        Returns:
            bool: 远程缓存是否已连接
        """
        if self._started:
            return self.connection.is_available()

        self.memory.start_sweeper()
        connected = await self.connection.connect()
        self._started = True

        logger.info(f"缓存服务已启动 (tier={self.manager.active_tier}, prefix={self.config.key_prefix})")
        return connected

    async def shutdown(self) -> None:
        """关闭缓存服务：等待后台写入、停止后台任务并关闭连接"""
        if not self._started:
            return

        await self.manager.wait_background()
        await self.memory.stop_sweeper()
        await self.connection.disconnect()
        self._started = False

        logger.info("缓存服务已关闭")


def create_cache_service(config: CacheConfig | None = None, client_factory: ClientFactory | None = None) -> CacheService:
    """创建缓存服务

    Args:
        config: 缓存配置（可选，默认从应用配置加载）
        client_factory: Redis 客户端工厂（可选）

    Returns:
        CacheService 实例（尚未启动）
    """
    if config is None:
        config = create_cache_config_from_settings()

    service = CacheService(config, client_factory=client_factory)
    logger.info(f"缓存服务创建成功 (enabled={config.enabled}, prefix={config.key_prefix})")
    return service
