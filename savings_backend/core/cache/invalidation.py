"""
缓存失效模块

写操作成功后按实体类型清除相关缓存。每种实体对应一组 glob 模式，
例如客户数据变化时还要清除嵌入了客户数据的仪表盘和汇总缓存。
"""

import asyncio
import logging

from savings_backend.core.cache.manager import CacheManager

logger = logging.getLogger(__name__)

ALL = "all"

# 实体类型 -> 键模式后缀（前面会拼接 "<命名空间>:"）
ENTITY_PATTERNS: dict[str, tuple[str, ...]] = {
    "customer": ("*/customer/*", "*/dashboard*", "*/summary*"),
    "account": ("*/savings-account/*", "*/account/*", "*/dashboard*", "*/summary*"),
    "transaction": ("*/transaction/*", "*/savings-account/*", "*/dashboard*", "*/summary*"),
    "account_product": ("*/account-product*",),
    "device_verification": ("*/device-verification*",),
    "user": ("*/user/*",),
    "branch": ("*/branch/*",),
    "loan": ("*/loan/*", "*/dashboard*", "*/summary*"),
    "repayment": ("*/repayment/*", "*/loan/*"),
    "expense": ("*/expense/*", "*/financial*"),
    ALL: ("*",),
}


class InvalidationRouter:
    """按实体类型失效缓存"""

    def __init__(self, cache_manager: CacheManager, entity_patterns: dict[str, tuple[str, ...]] | None = None):
        self.cache_manager = cache_manager
        self.entity_patterns = entity_patterns or ENTITY_PATTERNS
        self._background: set[asyncio.Task] = set()

    @property
    def entity_types(self) -> list[str]:
        return list(self.entity_patterns)

    def patterns_for(self, entity_type: str) -> list[str]:
        """返回实体类型对应的完整键模式

        未知的实体类型按 all 处理。
        """
        suffixes = self.entity_patterns.get(entity_type)
        if suffixes is None:
            logger.warning(f"未知的缓存实体类型 '{entity_type}'，将清除全部缓存")
            suffixes = self.entity_patterns[ALL]

        namespace = self.cache_manager.key_prefix
        return [f"{namespace}:{suffix}" for suffix in suffixes]

    async def invalidate(self, entity_type: str = ALL) -> int:
        """清除实体类型相关的所有缓存

        Args:
            entity_type: 实体类型，如 customer、account、all

        Returns:
            int: 删除的缓存条目总数
        """
        total_cleared = 0
        for pattern in self.patterns_for(entity_type):
            total_cleared += await self.cache_manager.delete_pattern(pattern)

        logger.info(f"已清除 {entity_type} 相关缓存: {total_cleared} 个条目")
        return total_cleared

    def invalidate_in_background(self, entity_type: str) -> asyncio.Task:
        """在后台清除缓存，不阻塞写操作的响应"""
        task = asyncio.create_task(self.invalidate(entity_type))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task
