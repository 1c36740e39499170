"""
应用配置管理模块

使用 Pydantic Settings 从环境变量和 TOML 文件加载配置项。
优先级：环境变量 > config.toml > 默认值
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from savings_backend.core.config_manager import config_manager

# 只读接口的缓存时间（秒），按数据变化频率设置
DEFAULT_CACHED_ROUTES: Dict[str, int] = {
    "/api/customer/list": 180,
    "/api/savings-account/list": 120,
    "/api/transaction/list": 60,
    "/api/account-product/list": 600,
    "/api/device-verification/list": 60,
    "/api/user/list": 300,
    "/api/branch/list": 300,
    "/api/activity/summary": 60,
    "/api/dashboard/summary": 60,
}


def _load_cached_routes() -> Dict[str, int]:
    """读取 [cache.routes] 配置节，未配置时使用默认路由表"""
    section = config_manager.get_section("cache.routes")
    if not section:
        return dict(DEFAULT_CACHED_ROUTES)
    return {str(path): int(ttl) for path, ttl in section.items()}


class Settings(BaseSettings):
    """应用配置类，从环境变量和 TOML 文件加载配置"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="allow")

    # 应用配置
    APP_NAME: str = config_manager.get("app.name", "Savings Back Office")
    APP_VERSION: str = config_manager.get("app.version", "1.0.0")
    HOST: str = config_manager.get("app.host", "0.0.0.0", env_var="HOST")
    PORT: int = config_manager.get_int("app.port", 5000, env_var="PORT")

    # 日志配置
    LOG_LEVEL: str = config_manager.get("logging.level", "INFO", env_var="LOG_LEVEL")
    LOG_DIR: str = config_manager.get("logging.dir", "logs", env_var="LOG_DIR")

    # 接口限流与跨域
    RATE_LIMIT_ENABLED: bool = config_manager.get_bool("security.rate_limit_enabled", True, env_var="RATE_LIMIT_ENABLED")
    RATE_LIMIT_DEFAULT: str = config_manager.get("security.rate_limit_default", "300/minute", env_var="RATE_LIMIT_DEFAULT")
    CORS_ORIGINS: str = config_manager.get("security.cors_origins", "*", env_var="CORS_ORIGINS")

    # 缓存开关与远程缓存连接
    CACHE_ENABLED: bool = config_manager.get_bool("cache.enabled", True, env_var="CACHE_ENABLED")
    CACHE_HOST: str = config_manager.get("cache.host", "localhost", env_var="CACHE_HOST")
    CACHE_PORT: int = config_manager.get_int("cache.port", 6379, env_var="CACHE_PORT")
    CACHE_PASSWORD: Optional[str] = config_manager.get("cache.password", None, env_var="CACHE_PASSWORD")
    CACHE_DB_INDEX: int = config_manager.get_int("cache.db_index", 0, env_var="CACHE_DB_INDEX")
    CACHE_KEY_PREFIX: str = config_manager.get("cache.key_prefix", "cache", env_var="CACHE_KEY_PREFIX")
    CACHE_MAX_CONNECTIONS: int = config_manager.get_int("cache.max_connections", 10, env_var="CACHE_MAX_CONNECTIONS")

    # 连接生命周期
    CACHE_MAX_RECONNECT_ATTEMPTS: int = config_manager.get_int(
        "cache.max_reconnect_attempts", 5, env_var="CACHE_MAX_RECONNECT_ATTEMPTS"
    )
    CACHE_CONNECT_TIMEOUT_MS: int = config_manager.get_int(
        "cache.connect_timeout_ms", 10000, env_var="CACHE_CONNECT_TIMEOUT_MS"
    )
    CACHE_OPERATION_TIMEOUT_MS: int = config_manager.get_int(
        "cache.operation_timeout_ms", 2000, env_var="CACHE_OPERATION_TIMEOUT_MS"
    )
    CACHE_RETRY_DELAY_MS: int = config_manager.get_int("cache.retry_delay_ms", 50, env_var="CACHE_RETRY_DELAY_MS")
    CACHE_RETRY_MAX_DELAY_MS: int = config_manager.get_int(
        "cache.retry_max_delay_ms", 2000, env_var="CACHE_RETRY_MAX_DELAY_MS"
    )
    CACHE_HEALTH_CHECK_INTERVAL: int = config_manager.get_int(
        "cache.health_check_interval", 30, env_var="CACHE_HEALTH_CHECK_INTERVAL"
    )

    # 进程内降级缓存
    CACHE_FALLBACK_CAPACITY: int = config_manager.get_int(
        "cache.fallback.capacity", 100, env_var="CACHE_FALLBACK_CAPACITY"
    )
    CACHE_FALLBACK_TTL: int = config_manager.get_int("cache.fallback.ttl", 300, env_var="CACHE_FALLBACK_TTL")
    CACHE_SWEEP_INTERVAL: int = config_manager.get_int(
        "cache.fallback.sweep_interval", 300, env_var="CACHE_SWEEP_INTERVAL"
    )

    # 路由缓存表：路径前缀 -> TTL（秒）
    CACHE_ROUTES: Dict[str, int] = Field(default_factory=_load_cached_routes)


# 全局配置实例
settings = Settings()
