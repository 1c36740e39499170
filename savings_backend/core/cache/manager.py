"""
缓存管理器

缓存操作的唯一入口。每次调用都根据 ConnectionManager.is_available() 选择缓存层：
远程缓存可用时使用 Redis，否则使用进程内缓存。选择不做粘滞，重连成功后的下一次调用即切回远程层。

值在进入缓存层前序列化为 JSON 文本，任何缓存层的异常都不会传递给调用方。
"""

import asyncio
import logging
import time
from typing import Any

from savings_backend.core.cache.connection import ConnectionManager
from savings_backend.core.cache.exceptions import CacheSerializationError
from savings_backend.core.cache.logger import get_cache_logger
from savings_backend.core.cache.memory_cache import MemoryCache
from savings_backend.core.cache.metrics import get_cache_metrics
from savings_backend.core.cache.redis_client import RedisClient
from savings_backend.core.cache.serializer import deserialize, serialize
from savings_backend.core.cache.stats import CacheStats

logger = logging.getLogger(__name__)

REMOTE = "remote"
MEMORY = "memory"


class CacheManager:
    """缓存管理器

    提供统一的缓存操作接口，支持自动降级。
    """

    def __init__(
        self,
        connection: ConnectionManager,
        remote: RedisClient,
        memory: MemoryCache,
        key_prefix: str = "cache",
    ):
        """初始化缓存管理器

        Args:
            connection: 连接管理器（决定使用哪一层）
            remote: 远程缓存适配器
            memory: 进程内降级缓存
            key_prefix: 缓存键命名空间
        """
        self.connection = connection
        self.remote = remote
        self.memory = memory
        self.key_prefix = key_prefix
        self.cache_logger = get_cache_logger()
        self.metrics = get_cache_metrics()
        self._background: set[asyncio.Task] = set()

    @property
    def active_tier(self) -> str:
        """当前生效的缓存层（remote / memory）"""
        return REMOTE if self.connection.is_available() else MEMORY

    def build_key(self, path_and_query: str) -> str:
        """构建缓存键

        Args:
            path_and_query: 原始请求路径（含查询字符串）

        Returns:
            str: 缓存键（格式：prefix:/path?query）
        """
        return f"{self.key_prefix}:{path_and_query}"

    def _record_fallback(self, operation: str) -> None:
        reason = "remote_unavailable" if self.connection.config.enabled else "cache_disabled"
        self.metrics.record_degradation(reason)
        logger.debug(f"缓存操作使用进程内缓存: operation={operation}, reason={reason}")

    async def get(self, key: str) -> Any | None:
        """读取缓存

        未命中、缓存层故障、数据损坏都返回 None。

        Args:
            key: 缓存键

        Returns:
            反序列化后的值，或 None
        """
        start_time = time.perf_counter()
        tier = self.active_tier

        try:
            if tier == REMOTE:
                raw_value = await self.remote.get(key)
            else:
                self._record_fallback("get")
                raw_value = self.memory.get(key)
        except Exception as e:
            logger.error(f"缓存读取异常 (key={key}, tier={tier}): {e}")
            return None

        latency_ms = (time.perf_counter() - start_time) * 1000

        if raw_value is None:
            self.cache_logger.log_cache_get(key=key, hit=False, tier=tier, latency_ms=latency_ms)
            self.metrics.record_cache_miss(tier)
            return None

        try:
            value = deserialize(raw_value, key=key)
        except CacheSerializationError as e:
            await self._drop_corrupted(key, tier, e)
            self.metrics.record_cache_miss(tier)
            return None

        self.cache_logger.log_cache_get(key=key, hit=True, tier=tier, latency_ms=latency_ms)
        self.metrics.record_cache_hit(tier)
        return value

    async def _drop_corrupted(self, key: str, tier: str, error: CacheSerializationError) -> None:
        """删除无法反序列化的条目，按未命中处理"""
        self.cache_logger.log_cache_degradation(
            reason="serialization_error", operation="get", key=key, error=error.message, fallback="miss"
        )
        self.metrics.record_degradation("serialization_error")

        if tier == REMOTE:
            await self.remote.delete(key)
        else:
            self.memory.delete(key)

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """写入缓存

        进程内缓存使用统一的过期时间，忽略 ttl。

        Args:
            key: 缓存键
            value: 要缓存的值（须可序列化为 JSON）
            ttl: 过期时间（秒）

        Returns:
            bool: 是否写入成功
        """
        start_time = time.perf_counter()

        try:
            raw_value = serialize(value, key=key)
        except CacheSerializationError as e:
            self.cache_logger.log_cache_set(key=key, success=False, tier=self.active_tier, ttl=ttl, error=e.message)
            self.metrics.record_degradation("serialization_error")
            return False

        tier = self.active_tier
        try:
            if tier == REMOTE:
                success = await self.remote.set(key, raw_value, ttl)
            else:
                self._record_fallback("set")
                self.memory.set(key, raw_value)
                success = True
        except Exception as e:
            logger.error(f"缓存写入异常 (key={key}, tier={tier}): {e}")
            success = False

        self.cache_logger.log_cache_set(
            key=key, success=success, tier=tier, ttl=ttl, latency_ms=(time.perf_counter() - start_time) * 1000
        )
        return success

    async def delete(self, key: str) -> bool:
        """删除单个缓存键"""
        tier = self.active_tier
        try:
            if tier == REMOTE:
                deleted = await self.remote.delete(key)
            else:
                deleted = self.memory.delete(key)
        except Exception as e:
            self.cache_logger.log_cache_invalidate(tier=tier, key=key, success=False, error=str(e))
            return False

        self.cache_logger.log_cache_invalidate(tier=tier, key=key)
        return deleted

    async def delete_pattern(self, pattern: str) -> int:
        """删除匹配 glob 模式的所有缓存键

        Args:
            pattern: glob 模式（两层语义一致）

        Returns:
            int: 删除的键数量，失败或无匹配时为 0
        """
        tier = self.active_tier
        try:
            if tier == REMOTE:
                count = await self.remote.delete_pattern(pattern)
            else:
                count = self.memory.delete_matching(pattern)
        except Exception as e:
            self.cache_logger.log_cache_invalidate(tier=tier, pattern=pattern, success=False, error=str(e))
            return 0

        self.cache_logger.log_cache_invalidate(tier=tier, pattern=pattern, count=count)
        return count

    async def flush(self) -> bool:
        """清空当前生效缓存层的命名空间（管理操作）"""
        tier = self.active_tier
        try:
            if tier == REMOTE:
                return await self.remote.flush()
            count = self.memory.clear()
        except Exception as e:
            logger.error(f"清空缓存失败 (tier={tier}): {e}")
            return False

        logger.warning(f"进程内缓存已清空: count={count}")
        return True

    async def stats(self) -> CacheStats:
        """当前生效缓存层的统计信息"""
        if self.active_tier == REMOTE:
            try:
                return await self.remote.introspect()
            except Exception as e:
                logger.error(f"读取远程缓存统计失败: {e}")
                return CacheStats(connected=False, backing_store=REMOTE)

        memory_stats = self.memory.stats()
        return CacheStats(
            connected=False,
            backing_store=MEMORY,
            key_count=memory_stats["keys"],
            hit_count=memory_stats["hits"],
            miss_count=memory_stats["misses"],
            hit_rate=memory_stats["hit_rate"],
        )

    def set_in_background(self, key: str, value: Any, ttl: int) -> asyncio.Task:
        """在后台任务中写入缓存，不阻塞调用方

        任务与发起它的请求相互独立，错误只写入日志。
        """
        task = asyncio.create_task(self.set(key, value, ttl))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"后台缓存写入失败: {error}")

    async def wait_background(self) -> None:
        """等待所有后台写入完成（关闭前或测试中使用）"""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
