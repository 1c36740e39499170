"""
进程内降级缓存

远程缓存不可用或被禁用时使用的有界缓存：
- 所有条目使用统一的过期时间，与调用方请求的 TTL 无关
- 容量满时先清理过期条目，再按插入顺序淘汰最旧条目（不是 LRU）
- 后台任务按固定周期执行同样的清理
"""

import asyncio
import contextlib
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from fnmatch import fnmatchcase

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """缓存条目，value 为序列化后的文本"""

    key: str
    value: str
    inserted_at: float
    ttl_seconds: int

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl_seconds


class MemoryCache:
    """有界、带过期时间的进程内缓存

    所有读写都持有同一把锁，清理任务与请求路径上的写入不会交错。
    """

    def __init__(
        self,
        capacity: int = 100,
        ttl: int = 300,
        sweep_interval: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        """初始化进程内缓存

        Args:
            capacity: 最大条目数
            ttl: 统一过期时间（秒）
            sweep_interval: 后台清理周期（秒）
            clock: 时钟函数（测试时可替换）
        """
        if capacity <= 0:
            raise ValueError("容量必须为正整数")

        self.capacity = capacity
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._sweeper_task: asyncio.Task | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        """按插入顺序返回当前所有键（含尚未清理的过期键）"""
        with self._lock:
            return list(self._entries)

    def get(self, key: str) -> str | None:
        """读取缓存，过期条目视为未命中并立即删除"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def set(self, key: str, value: str) -> None:
        """写入缓存，容量已满时先腾出空间

        重复写入同一个键会把它移动到最新位置。
        """
        with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self.capacity:
                self._evict(reserve=1)

            self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._clock(), ttl_seconds=self.ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_matching(self, pattern: str) -> int:
        """删除匹配 glob 模式（与 Redis SCAN MATCH 语义一致）的所有条目

        Args:
            pattern: glob 模式，如 cache:*/customer/*

        Returns:
            int: 删除的条目数
        """
        with self._lock:
            matched = [key for key in self._entries if fnmatchcase(key, pattern)]
            for key in matched:
                del self._entries[key]
            return len(matched)

    def clear(self) -> int:
        """清空缓存，返回删除的条目数"""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def sweep(self) -> int:
        """执行一次清理：删除过期条目，超出容量时淘汰最旧条目

        Returns:
            int: 删除的条目数
        """
        with self._lock:
            removed = self._evict(reserve=0)

        if removed:
            logger.debug(f"进程内缓存清理完成: 删除 {removed} 个条目")
        return removed

    def _evict(self, reserve: int) -> int:
        """调用方必须持有锁"""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        removed = len(expired)
        while self._entries and len(self._entries) > self.capacity - reserve:
            self._entries.popitem(last=False)
            removed += 1

        return removed

    def stats(self) -> dict[str, int | float]:
        """返回条目数和命中统计"""
        with self._lock:
            total = self._hits + self._misses
            return {
                "keys": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 2) if total else 0.0,
            }

    def start_sweeper(self) -> None:
        """在当前事件循环中启动后台清理任务"""
        if self._sweeper_task is None or self._sweeper_task.done():
            self._sweeper_task = asyncio.create_task(self._sweep_loop())
            logger.info(f"进程内缓存清理任务已启动: 周期 {self.sweep_interval}秒, 容量 {self.capacity}")

    async def stop_sweeper(self) -> None:
        """停止后台清理任务"""
        task = self._sweeper_task
        self._sweeper_task = None
        if task is None or task.done():
            return

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()
