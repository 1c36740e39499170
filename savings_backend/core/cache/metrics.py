"""
缓存监控指标模块

提供 Prometheus 格式的监控指标导出，用于监控缓存命中率、降级情况和远程连接状态。
"""

import logging

from prometheus_client import Counter, Enum, Histogram

from savings_backend.core.cache.state import ConnectionState

logger = logging.getLogger(__name__)


# 缓存命中/未命中计数器
cache_hits_total = Counter(
    "cache_hits_total",
    "缓存命中总次数",
    ["tier"],  # tier: remote, memory
)

cache_misses_total = Counter(
    "cache_misses_total",
    "缓存未命中总次数",
    ["tier"],
)

# 缓存降级计数器
cache_degradation_total = Counter(
    "cache_degradation_total",
    "缓存降级总次数",
    ["reason"],  # reason: remote_unavailable, remote_error, serialization_error, ...
)

# 远程缓存连接状态
cache_connection_state = Enum(
    "cache_connection_state",
    "远程缓存连接状态",
    states=[state.value for state in ConnectionState],
)

# 缓存操作耗时
cache_operation_duration = Histogram(
    "cache_operation_duration_seconds",
    "缓存操作耗时（秒）",
    ["operation", "tier", "status"],  # status: success, failed
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


class CacheMetrics:
    """缓存指标记录器

    提供便捷的方法来记录各种缓存指标。
    """

    @staticmethod
    def record_cache_hit(tier: str) -> None:
        """记录缓存命中

        Args:
            tier: 缓存层（remote, memory）
        """
        cache_hits_total.labels(tier=tier).inc()

    @staticmethod
    def record_cache_miss(tier: str) -> None:
        """记录缓存未命中

        Args:
            tier: 缓存层（remote, memory）
        """
        cache_misses_total.labels(tier=tier).inc()

    @staticmethod
    def record_degradation(reason: str) -> None:
        """记录缓存降级事件

        Args:
            reason: 降级原因
        """
        cache_degradation_total.labels(reason=reason).inc()
        logger.debug(f"记录降级指标: reason={reason}")

    @staticmethod
    def set_connection_state(state: ConnectionState) -> None:
        """更新远程缓存连接状态"""
        cache_connection_state.state(state.value)

    @staticmethod
    def record_operation_duration(operation: str, tier: str, status: str, duration_seconds: float) -> None:
        """记录缓存操作耗时

        Args:
            operation: 操作类型（get, set, delete, delete_pattern, flush）
            tier: 缓存层（remote, memory）
            status: 操作状态（success, failed）
            duration_seconds: 操作耗时（秒）
        """
        cache_operation_duration.labels(operation=operation, tier=tier, status=status).observe(duration_seconds)

    @staticmethod
    def get_cache_hit_rate() -> float:
        """计算进程视角的缓存命中率

        Returns:
            float: 缓存命中率（0-100）
        """
        hits = sum(sample.value for sample in cache_hits_total.collect()[0].samples if sample.name.endswith("_total"))
        misses = sum(
            sample.value for sample in cache_misses_total.collect()[0].samples if sample.name.endswith("_total")
        )

        total = hits + misses
        if total == 0:
            return 0.0

        return (hits / total) * 100


# 全局指标记录器实例（Prometheus 注册表本身是进程级的）
_metrics: CacheMetrics = CacheMetrics()


def get_cache_metrics() -> CacheMetrics:
    """获取全局缓存指标记录器实例

    Returns:
        CacheMetrics: 缓存指标记录器实例
    """
    return _metrics
