"""
Redis 远程缓存适配器

对远程缓存的网络调用做一层薄封装。所有方法都是 fail-open 的：
连接不可用、超时或传输错误时返回中性值（None/False/0），并把错误报告给 ConnectionManager。
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from redis import asyncio as aioredis
from redis.exceptions import DataError, ResponseError

from savings_backend.core.cache.config import CacheConfig
from savings_backend.core.cache.connection import TRANSPORT_ERRORS, ConnectionManager
from savings_backend.core.cache.metrics import get_cache_metrics
from savings_backend.core.cache.stats import CacheStats, compute_hit_rate

logger = logging.getLogger(__name__)

T = TypeVar("T")

TIER = "remote"
SCAN_BATCH_SIZE = 100


class RedisClient:
    """Redis 远程缓存适配器

    每次调用前检查 connection.is_available()，每次调用都受 operation_timeout 限制。
    """

    def __init__(self, connection: ConnectionManager, config: CacheConfig):
        """初始化适配器

        Args:
            connection: 连接管理器
            config: 缓存配置
        """
        self.connection = connection
        self.config = config
        self.metrics = get_cache_metrics()

    def is_available(self) -> bool:
        return self.connection.is_available()

    async def _execute(
        self, operation: str, target: str, command: Callable[[aioredis.Redis], Awaitable[T]]
    ) -> tuple[bool, T | None]:
        """执行一次远程调用

        Args:
            operation: 操作名称（用于日志和指标）
            target: 操作对象（键或模式）
            command: 接收客户端并返回协程的函数

        Returns:
            (是否成功, 结果)
        """
        client = self.connection.client
        if client is None or not self.connection.is_available():
            return False, None

        start_time = time.perf_counter()
        try:
            result = await asyncio.wait_for(command(client), timeout=self.config.operation_timeout)
        except (ResponseError, DataError) as e:
            # 命令本身出错（如类型不匹配），连接仍然可用
            logger.error(f"Redis {operation.upper()} 命令错误 ({target}): {e}")
            self.metrics.record_operation_duration(operation, TIER, "failed", time.perf_counter() - start_time)
            return False, None
        except TRANSPORT_ERRORS as e:
            logger.error(f"Redis {operation.upper()} 操作失败 ({target}): {type(e).__name__}: {e}")
            self.metrics.record_operation_duration(operation, TIER, "failed", time.perf_counter() - start_time)
            self.connection.report_error(e, client=client)
            return False, None

        self.metrics.record_operation_duration(operation, TIER, "success", time.perf_counter() - start_time)
        return True, result

    async def get(self, key: str) -> str | None:
        """获取缓存值，失败与未命中同样返回 None"""
        _, value = await self._execute("get", key, lambda client: client.get(key))
        return value

    async def set(self, key: str, value: str, ttl: int) -> bool:
        """写入缓存值并设置过期时间（SETEX）

        Args:
            key: 缓存键
            value: 序列化后的缓存值
            ttl: 过期时间（秒）

        Returns:
            bool: 是否写入成功
        """
        ok, result = await self._execute("set", key, lambda client: client.setex(key, ttl, value))
        return ok and bool(result)

    async def delete(self, key: str) -> bool:
        """删除缓存键，键存在且被删除时返回 True"""
        ok, result = await self._execute("delete", key, lambda client: client.delete(key))
        return ok and bool(result)

    async def _scan_delete(self, operation: str, pattern: str) -> tuple[bool, int]:
        """SCAN 分批遍历并删除匹配的键，避免 KEYS 阻塞 Redis

        每次 SCAN 和 DEL 各自受 operation_timeout 限制，键空间再大也不会让整个遍历超时。

        Returns:
            (是否完整遍历, 已删除的键数量)；中途失败时返回失败前已删除的数量
        """
        deleted_count = 0
        cursor = 0

        while True:
            ok, page = await self._execute(
                operation, pattern, lambda client: client.scan(cursor=cursor, match=pattern, count=SCAN_BATCH_SIZE)
            )
            if not ok:
                return False, deleted_count
            cursor, keys = page

            if keys:
                ok, count = await self._execute(operation, pattern, lambda client: client.delete(*keys))
                if not ok:
                    return False, deleted_count
                deleted_count += count or 0

            if cursor == 0:
                return True, deleted_count

    async def delete_pattern(self, pattern: str) -> int:
        """批量删除匹配 glob 模式的键

        Args:
            pattern: 键模式（支持 * ? [] 通配符）

        Returns:
            int: 删除的键数量；中途失败时为失败前已删除的数量
        """
        ok, count = await self._scan_delete("delete_pattern", pattern)
        if not ok:
            logger.warning(f"批量删除远程缓存中断: pattern={pattern}, deleted={count}")
            return count

        logger.info(f"批量删除远程缓存: pattern={pattern}, count={count}")
        return count

    async def flush(self) -> bool:
        """清空当前命名空间下的所有键（管理操作）

        只删除 `<key_prefix>:*`，不会影响同一数据库中其它应用的数据。
        """
        pattern = f"{self.config.key_prefix}:*"
        ok, count = await self._scan_delete("flush", pattern)
        if ok:
            logger.warning(f"远程缓存命名空间已清空: prefix={self.config.key_prefix}, count={count}")
        else:
            logger.error(f"清空远程缓存命名空间中断: prefix={self.config.key_prefix}, deleted={count}")
        return ok

    async def introspect(self) -> CacheStats:
        """读取服务端统计：命中/未命中次数、键数量和内存占用

        Returns:
            CacheStats: 不可用时返回 connected=False 的统计
        """
        ok, info = await self._execute("info", "stats", lambda client: client.info("stats"))
        if ok:
            ok, key_count = await self._execute("dbsize", "-", lambda client: client.dbsize())
        if not ok:
            return CacheStats(connected=False, backing_store=TIER)

        _, memory_info = await self._execute("info", "memory", lambda client: client.info("memory"))

        hits = _as_int(info, "keyspace_hits")
        misses = _as_int(info, "keyspace_misses")
        return CacheStats(
            connected=True,
            backing_store=TIER,
            key_count=key_count or 0,
            hit_count=hits,
            miss_count=misses,
            hit_rate=compute_hit_rate(hits, misses),
            memory_usage=(memory_info or {}).get("used_memory_human"),
        )


def _as_int(info: dict[str, Any] | None, field: str) -> int:
    if not info:
        return 0
    try:
        return int(info.get(field, 0))
    except (TypeError, ValueError):
        return 0
