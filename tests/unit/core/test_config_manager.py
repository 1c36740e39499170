"""
ConfigManager 单元测试

验证点号路径读取、环境变量覆盖、类型转换和配置文件缺失时的默认值。
"""

import pytest

from savings_backend.core.config_manager import ConfigManager

CONFIG_TEXT = """
[app]
name = "Savings Back Office"
debug = true

[cache]
enabled = true
operation_timeout_ms = 500

[cache.routes]
"/api/customer" = 180
"/api/branch" = 600
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.test.toml"
    path.write_text(CONFIG_TEXT, encoding="utf-8")
    return path


class TestConfigManager:
    """测试配置读取"""

    def test_dotted_path(self, config_file):
        manager = ConfigManager(str(config_file))

        assert manager.get("app.name") == "Savings Back Office"
        assert manager.get_int("cache.operation_timeout_ms") == 500
        assert manager.get("cache.missing", "fallback") == "fallback"
        assert manager.get("app.name.length") is None
        assert manager.get_current_env() == "custom"

    def test_env_var_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("CACHE_OPERATION_TIMEOUT_MS", "250")
        monkeypatch.setenv("CACHE_ENABLED", "off")
        manager = ConfigManager(str(config_file))

        assert manager.get("cache.operation_timeout_ms", env_var="CACHE_OPERATION_TIMEOUT_MS") == "250"
        assert manager.get_int("cache.operation_timeout_ms", env_var="CACHE_OPERATION_TIMEOUT_MS") == 250
        assert manager.get_bool("cache.enabled", env_var="CACHE_ENABLED") is False

    @pytest.mark.parametrize("raw", ["true", "1", "YES", " on "])
    def test_truthy_strings(self, config_file, monkeypatch, raw):
        monkeypatch.setenv("APP_DEBUG", raw)
        manager = ConfigManager(str(config_file))

        assert manager.get_bool("app.debug", env_var="APP_DEBUG") is True

    def test_get_section(self, config_file):
        manager = ConfigManager(str(config_file))

        assert manager.get_section("cache.routes") == {"/api/customer": 180, "/api/branch": 600}
        assert manager.get_section("cache.enabled") == {}
        assert manager.get_section("nothing") == {}

    def test_missing_file_uses_defaults(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "absent.toml"))

        assert manager.get("app.name", "默认") == "默认"
        assert manager.get_int("cache.operation_timeout_ms", 100) == 100
        assert manager.get_bool("cache.enabled", True) is True

    def test_invalid_file_uses_defaults(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[cache\nenabled = ", encoding="utf-8")
        manager = ConfigManager(str(path))

        assert manager.get_section("cache") == {}

    def test_selects_file_by_config_env(self, monkeypatch):
        monkeypatch.setenv("CONFIG_ENV", "DEGRADED")
        manager = ConfigManager()

        assert manager.get_current_env() == "degraded"
        assert manager.config_path.name == "config.degraded.toml"
