"""
缓存监控指标单元测试

Prometheus 注册表是进程级的，断言都基于调用前后的差值。
"""

import pytest
from prometheus_client import REGISTRY

from savings_backend.core.cache.metrics import get_cache_metrics
from savings_backend.core.cache.state import ConnectionEvent, ConnectionState


def sample(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestCacheMetrics:
    """测试指标记录"""

    def test_hit_and_miss_counters(self):
        metrics = get_cache_metrics()
        hits_before = sample("cache_hits_total", tier="memory")
        misses_before = sample("cache_misses_total", tier="remote")

        metrics.record_cache_hit("memory")
        metrics.record_cache_miss("remote")

        assert sample("cache_hits_total", tier="memory") == hits_before + 1
        assert sample("cache_misses_total", tier="remote") == misses_before + 1

    def test_degradation_counter(self):
        before = sample("cache_degradation_total", reason="remote_error")

        get_cache_metrics().record_degradation("remote_error")

        assert sample("cache_degradation_total", reason="remote_error") == before + 1

    def test_connection_state_gauge(self):
        metrics = get_cache_metrics()

        metrics.set_connection_state(ConnectionState.DEGRADED)
        assert sample("cache_connection_state", cache_connection_state="degraded") == 1.0
        assert sample("cache_connection_state", cache_connection_state="connected") == 0.0

    def test_operation_duration(self):
        labels = {"operation": "get", "tier": "remote", "status": "success"}
        before = sample("cache_operation_duration_seconds_count", **labels)

        get_cache_metrics().record_operation_duration("get", "remote", "success", 0.002)

        assert sample("cache_operation_duration_seconds_count", **labels) == before + 1

    def test_hit_rate_range(self):
        get_cache_metrics().record_cache_hit("remote")

        assert 0.0 < get_cache_metrics().get_cache_hit_rate() <= 100.0


class TestMetricsFromCacheOperations:
    """测试缓存操作会更新指标"""

    @pytest.mark.asyncio
    async def test_fallback_records_degradation(self, memory_only_service):
        before = sample("cache_degradation_total", reason="cache_disabled")

        await memory_only_service.manager.get("cache:k")

        assert sample("cache_degradation_total", reason="cache_disabled") == before + 1

    @pytest.mark.asyncio
    async def test_remote_error_records_degradation(self, cache_service, fake_redis):
        before = sample("cache_degradation_total", reason="remote_error")
        fake_redis.go_down()

        await cache_service.manager.get("cache:k")

        assert sample("cache_degradation_total", reason="remote_error") == before + 1

    @pytest.mark.asyncio
    async def test_state_gauge_follows_connection(self, cache_service):
        assert sample("cache_connection_state", cache_connection_state="connected") == 1.0

        cache_service.connection.dispatch(ConnectionEvent.ERROR)

        assert sample("cache_connection_state", cache_connection_state="degraded") == 1.0
