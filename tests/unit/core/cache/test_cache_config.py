"""
缓存配置单元测试
"""

import pytest
from pydantic import ValidationError

from savings_backend.core.cache.config import (
    CacheConfig,
    create_cache_config_from_settings,
    validate_cache_config,
)
from savings_backend.core.config import DEFAULT_CACHED_ROUTES, settings


class TestCacheConfigDefaults:
    """测试默认值"""

    def test_defaults(self):
        config = CacheConfig()

        assert config.enabled is True
        assert config.port == 6379
        assert config.key_prefix == "cache"
        assert config.max_reconnect_attempts == 5
        assert config.connect_timeout_ms == 10000
        assert config.retry_delay_ms == 50
        assert config.retry_max_delay_ms == 2000
        assert config.fallback_capacity == 100
        assert config.fallback_ttl == 300
        assert config.sweep_interval == 300

    def test_timeouts_in_seconds(self):
        config = CacheConfig(connect_timeout_ms=1500, operation_timeout_ms=250)

        assert config.connect_timeout == 1.5
        assert config.operation_timeout == 0.25


class TestCacheConfigValidation:
    """测试字段校验"""

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_invalid_port(self, port):
        with pytest.raises(ValidationError):
            CacheConfig(port=port)

    def test_negative_db(self):
        with pytest.raises(ValidationError):
            CacheConfig(db=-1)

    def test_zero_reconnect_attempts_allowed(self):
        assert CacheConfig(max_reconnect_attempts=0).max_reconnect_attempts == 0

    def test_negative_reconnect_attempts(self):
        with pytest.raises(ValidationError):
            CacheConfig(max_reconnect_attempts=-1)

    @pytest.mark.parametrize(
        "field", ["connect_timeout_ms", "operation_timeout_ms", "fallback_capacity", "fallback_ttl", "retry_delay_ms"]
    )
    def test_non_positive_values(self, field):
        with pytest.raises(ValidationError):
            CacheConfig(**{field: 0})

    def test_route_must_start_with_slash(self):
        with pytest.raises(ValidationError):
            CacheConfig(routes={"api/customer/list": 180})

    def test_route_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            CacheConfig(routes={"/api/customer/list": 0})


class TestValidateCacheConfig:
    """测试建议性警告"""

    def test_disabled_config_only_warns_once(self):
        warnings = validate_cache_config(CacheConfig(enabled=False, operation_timeout_ms=20000))
        assert len(warnings) == 1
        assert "禁用" in warnings[0]

    def test_sane_config_has_no_warnings(self):
        assert validate_cache_config(CacheConfig(password="secret")) == []

    def test_operation_timeout_longer_than_handshake(self):
        warnings = validate_cache_config(CacheConfig(connect_timeout_ms=1000, operation_timeout_ms=3000))
        assert any("握手超时" in w for w in warnings)

    def test_retry_step_larger_than_cap(self):
        warnings = validate_cache_config(CacheConfig(retry_delay_ms=5000, retry_max_delay_ms=2000))
        assert any("退避" in w for w in warnings)

    def test_zero_reconnect_attempts(self):
        warnings = validate_cache_config(CacheConfig(max_reconnect_attempts=0))
        assert any("不会自动重连" in w for w in warnings)

    def test_very_long_route_ttl(self):
        warnings = validate_cache_config(CacheConfig(routes={"/api/report": 86400}))
        assert any("/api/report" in w for w in warnings)


class TestCreateFromSettings:
    """测试从应用配置创建"""

    def test_maps_settings_fields(self, monkeypatch):
        monkeypatch.setattr(settings, "CACHE_HOST", "redis.internal")
        monkeypatch.setattr(settings, "CACHE_PORT", 6380)
        monkeypatch.setattr(settings, "CACHE_DB_INDEX", 2)
        monkeypatch.setattr(settings, "CACHE_PASSWORD", "")
        monkeypatch.setattr(settings, "CACHE_MAX_RECONNECT_ATTEMPTS", 7)
        monkeypatch.setattr(settings, "CACHE_CONNECT_TIMEOUT_MS", 5000)

        config = create_cache_config_from_settings()

        assert config.host == "redis.internal"
        assert config.port == 6380
        assert config.db == 2
        assert config.password is None
        assert config.max_reconnect_attempts == 7
        assert config.connect_timeout_ms == 5000

    def test_routes_loaded_from_config_file(self):
        config = create_cache_config_from_settings()
        assert config.routes["/api/customer/list"] == DEFAULT_CACHED_ROUTES["/api/customer/list"]
