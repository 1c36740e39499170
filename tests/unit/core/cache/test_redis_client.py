"""
RedisClient 适配器单元测试

所有方法在连接不可用、超时或传输错误时都返回中性值，不抛出异常。
"""

import pytest
from redis.exceptions import ResponseError

from savings_backend.core.cache.state import ConnectionState


@pytest.fixture
def remote(cache_service):
    return cache_service.remote


class TestRedisClientOperations:
    """测试基础操作"""

    @pytest.mark.asyncio
    async def test_set_get_delete(self, remote, fake_redis):
        assert await remote.set("cache:/api/customer/list", '{"success": true}', 180) is True
        assert await remote.get("cache:/api/customer/list") == '{"success": true}'

        assert await remote.delete("cache:/api/customer/list") is True
        assert await remote.delete("cache:/api/customer/list") is False
        assert await remote.get("cache:/api/customer/list") is None

    @pytest.mark.asyncio
    async def test_set_uses_setex_with_ttl(self, remote, fake_redis, clock):
        await remote.set("cache:k", "v", 60)
        assert "setex" in fake_redis.commands

        clock.advance(61)
        assert await remote.get("cache:k") is None

    @pytest.mark.asyncio
    async def test_delete_pattern_scans_in_batches(self, remote, fake_redis):
        for i in range(250):
            await remote.set(f"cache:/api/customer/list?page={i}", "{}", 180)
        await remote.set("cache:/api/branch/list", "{}", 180)

        deleted = await remote.delete_pattern("cache:*/customer/*")

        assert deleted == 250
        assert fake_redis.commands.count("scan") >= 3
        assert await remote.get("cache:/api/branch/list") == "{}"

    @pytest.mark.asyncio
    async def test_delete_pattern_no_match(self, remote):
        assert await remote.delete_pattern("cache:*/loan/*") == 0

    @pytest.mark.asyncio
    async def test_flush_only_touches_namespace(self, remote, fake_redis):
        await remote.set("cache:/api/a", "1", 60)
        await remote.set("cache:/api/b", "2", 60)
        await fake_redis.set("session:abc", "other-app")

        assert await remote.flush() is True
        assert await remote.get("cache:/api/a") is None
        assert await fake_redis.get("session:abc") == "other-app"

    @pytest.mark.asyncio
    async def test_introspect(self, remote):
        await remote.set("cache:k", "v", 60)
        await remote.get("cache:k")
        await remote.get("cache:missing")

        stats = await remote.introspect()

        assert stats.connected is True
        assert stats.backing_store == "remote"
        assert stats.key_count == 1
        assert stats.hit_count == 1
        assert stats.miss_count == 1
        assert stats.hit_rate == 50.0
        assert stats.memory_usage == "1.02M"


class TestRedisClientFailOpen:
    """测试 fail-open 行为"""

    @pytest.mark.asyncio
    async def test_unavailable_returns_neutral_values_without_io(self, remote, fake_redis, cache_service):
        await cache_service.connection.disconnect()
        fake_redis.commands.clear()

        assert await remote.get("cache:k") is None
        assert await remote.set("cache:k", "v", 60) is False
        assert await remote.delete("cache:k") is False
        assert await remote.delete_pattern("cache:*") == 0
        assert await remote.flush() is False
        assert (await remote.introspect()).connected is False
        assert fake_redis.commands == []

    @pytest.mark.asyncio
    async def test_transport_error_reports_and_degrades(self, remote, fake_redis, cache_service):
        fake_redis.go_down()

        assert await remote.get("cache:k") is None

        assert cache_service.connection.state in (ConnectionState.DEGRADED, ConnectionState.CONNECTING)
        assert remote.is_available() is False

    @pytest.mark.asyncio
    async def test_timeout_is_treated_as_failure(self, remote, fake_redis, cache_service):
        fake_redis.delay = 1  # operation_timeout_ms = 100

        assert await remote.set("cache:k", "v", 60) is False
        assert cache_service.connection.is_available() is False

    @pytest.mark.asyncio
    async def test_command_error_keeps_connection(self, remote, fake_redis, cache_service):
        fake_redis.fail_with = ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")

        assert await remote.get("cache:k") is None
        assert cache_service.connection.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_delete_pattern_failure_returns_zero(self, remote, fake_redis):
        await remote.set("cache:/api/customer/list", "{}", 60)
        fake_redis.go_down()

        assert await remote.delete_pattern("cache:*/customer/*") == 0


class TestScanDelete:
    """测试分批删除的超时与中断"""

    @pytest.mark.asyncio
    async def test_large_keyspace_does_not_time_out(self, remote, fake_redis, cache_service):
        for i in range(1000):
            fake_redis.store[f"cache:/api/customer/{i:04d}"] = ("{}", None)
            fake_redis.store[f"cache:/api/branch/{i:04d}"] = ("{}", None)
        # 每个命令 10ms，operation_timeout_ms = 100，整个遍历约 0.3 秒
        fake_redis.delay = 0.01

        deleted = await remote.delete_pattern("cache:*/customer/*")

        assert deleted == 1000
        assert len(fake_redis.store) == 1000
        assert cache_service.connection.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_interrupted_delete_returns_partial_count(self, remote, fake_redis, cache_service):
        for i in range(250):
            fake_redis.store[f"cache:/api/customer/{i:03d}"] = ("{}", None)
        # SCAN、DEL、SCAN 成功，第二次 DEL 时连接断开
        fake_redis.fail_after = 3

        deleted = await remote.delete_pattern("cache:*/customer/*")

        assert deleted == 100
        assert len(fake_redis.store) == 150
        assert cache_service.connection.is_available() is False

    @pytest.mark.asyncio
    async def test_interrupted_flush_reports_failure(self, remote, fake_redis):
        for i in range(250):
            fake_redis.store[f"cache:/api/customer/{i:03d}"] = ("{}", None)
        fake_redis.fail_after = 1

        assert await remote.flush() is False
        assert len(fake_redis.store) == 250
