"""
缓存统计模型
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def compute_hit_rate(hits: int, misses: int) -> float:
    """命中率百分比，保留两位小数"""
    total = hits + misses
    if total == 0:
        return 0.0
    return round(hits / total * 100, 2)


class CacheStats(BaseModel):
    """当前生效缓存层的统计信息（按需计算，不持久化）"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    connected: bool = Field(description="远程缓存是否已连接")
    backing_store: Literal["remote", "memory"] = Field(description="当前生效的缓存层")
    key_count: int = Field(default=0, description="键数量")
    hit_count: int = Field(default=0, description="命中次数")
    miss_count: int = Field(default=0, description="未命中次数")
    hit_rate: float = Field(default=0.0, description="命中率（百分比）")
    memory_usage: str | None = Field(default=None, description="远程缓存内存占用（仅远程层）")
