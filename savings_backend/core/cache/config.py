"""
缓存配置模型

定义分层缓存的配置参数：远程缓存连接、重连策略、进程内降级缓存和路由缓存表。
"""

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class CacheConfig(BaseModel):
    """缓存配置模型

    enabled=False 时不会连接远程缓存，所有请求直接使用进程内降级缓存。
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "enabled": True,
                "host": "localhost",
                "port": 6379,
                "db": 0,
                "password": None,
                "key_prefix": "cache",
                "max_reconnect_attempts": 5,
                "connect_timeout_ms": 10000,
                "fallback_capacity": 100,
                "fallback_ttl": 300,
            }
        }
    )

    enabled: bool = Field(default=True, description="远程缓存开关，False 时只使用进程内缓存")
    host: str = Field(default="localhost", description="Redis 服务器地址")
    port: int = Field(default=6379, description="Redis 服务器端口")
    db: int = Field(default=0, description="Redis 数据库编号")
    password: str | None = Field(default=None, description="Redis 密码（可选）")
    key_prefix: str = Field(default="cache", description="缓存键命名空间")
    max_connections: int = Field(default=10, description="连接池最大连接数")

    max_reconnect_attempts: int = Field(default=5, description="最大自动重连次数")
    connect_timeout_ms: int = Field(default=10000, description="握手超时（毫秒）")
    operation_timeout_ms: int = Field(default=2000, description="单次远程操作超时（毫秒）")
    retry_delay_ms: int = Field(default=50, description="重连退避步长（毫秒）")
    retry_max_delay_ms: int = Field(default=2000, description="重连退避上限（毫秒）")
    health_check_interval: float = Field(default=30, description="健康检查间隔（秒）")

    fallback_capacity: int = Field(default=100, description="进程内缓存最大条目数")
    fallback_ttl: int = Field(default=300, description="进程内缓存统一过期时间（秒）")
    sweep_interval: float = Field(default=300, description="进程内缓存清理周期（秒）")

    routes: dict[str, int] = Field(default_factory=dict, description="路由前缀 -> 缓存时间（秒）")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """验证端口号范围"""
        if not 1 <= v <= 65535:
            raise ValueError("端口号必须在 1-65535 范围内")
        return v

    @field_validator("db")
    @classmethod
    def validate_db(cls, v: int) -> int:
        """验证数据库编号"""
        if v < 0:
            raise ValueError("数据库编号必须为非负整数")
        return v

    @field_validator("max_reconnect_attempts")
    @classmethod
    def validate_max_reconnect_attempts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("最大重连次数不能为负数")
        return v

    @field_validator(
        "connect_timeout_ms",
        "operation_timeout_ms",
        "retry_delay_ms",
        "retry_max_delay_ms",
        "max_connections",
        "fallback_capacity",
        "fallback_ttl",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """验证正整数配置"""
        if v <= 0:
            raise ValueError("配置值必须为正整数")
        return v

    @field_validator("health_check_interval", "sweep_interval")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("周期必须大于 0")
        return v

    @field_validator("routes")
    @classmethod
    def validate_routes(cls, v: dict[str, int]) -> dict[str, int]:
        """验证路由缓存表"""
        for path, ttl in v.items():
            if not path.startswith("/"):
                raise ValueError(f"缓存路由必须以 / 开头: {path}")
            if ttl <= 0:
                raise ValueError(f"缓存路由 TTL 必须为正整数: {path}={ttl}")
        return v

    @property
    def connect_timeout(self) -> float:
        """握手超时（秒）"""
        return self.connect_timeout_ms / 1000

    @property
    def operation_timeout(self) -> float:
        """单次操作超时（秒）"""
        return self.operation_timeout_ms / 1000


def validate_cache_config(config: CacheConfig) -> list[str]:
    """检查配置的合理性，返回建议性警告（不阻止启动）

    Args:
        config: 缓存配置实例

    Returns:
        list[str]: 警告信息列表
    """
    warnings = []

    if not config.enabled:
        warnings.append("远程缓存已禁用，系统将只使用进程内缓存")
        return warnings

    if not config.host:
        warnings.append("Redis 主机地址为空，可能导致连接失败")

    if not config.key_prefix:
        warnings.append("缓存键命名空间为空，可能与其它应用的键冲突")

    if config.operation_timeout_ms > config.connect_timeout_ms:
        warnings.append(
            f"单次操作超时 ({config.operation_timeout_ms}ms) 大于握手超时 ({config.connect_timeout_ms}ms)"
        )

    if config.operation_timeout_ms > 5000:
        warnings.append(f"单次操作超时 ({config.operation_timeout_ms}ms) 过长，远程缓存变慢时会拖慢请求")

    if config.retry_delay_ms > config.retry_max_delay_ms:
        warnings.append("重连退避步长大于退避上限，每次重连都将使用上限值")

    if config.max_reconnect_attempts == 0:
        warnings.append("最大重连次数为 0，连接失败后不会自动重连")

    for path, ttl in config.routes.items():
        if ttl > config.fallback_ttl * 12:
            warnings.append(f"路由 {path} 的缓存时间 ({ttl}秒) 过长，可能导致数据不一致")

    if "prod" in config.key_prefix.lower() and not config.password:
        warnings.append("生产环境建议设置 Redis 密码以提高安全性")

    return warnings


def validate_and_log_config(config: CacheConfig) -> CacheConfig:
    """验证缓存配置并记录警告信息

    Args:
        config: 缓存配置实例

    Returns:
        CacheConfig: 原配置实例
    """
    if config.enabled:
        logger.info(
            f"缓存配置已加载: host={config.host}, port={config.port}, db={config.db}, "
            f"prefix={config.key_prefix}, routes={len(config.routes)}"
        )
    else:
        logger.info("远程缓存已禁用，系统将使用进程内缓存")

    for warning in validate_cache_config(config):
        logger.warning(f"缓存配置警告: {warning}")

    return config


def create_cache_config_from_settings() -> CacheConfig:
    """从应用配置创建缓存配置实例

    Returns:
        CacheConfig: 缓存配置实例

    Raises:
        pydantic.ValidationError: 配置值不合法时抛出
    """
    from savings_backend.core.config import settings

    config = CacheConfig(
        enabled=settings.CACHE_ENABLED,
        host=settings.CACHE_HOST,
        port=settings.CACHE_PORT,
        db=settings.CACHE_DB_INDEX,
        password=settings.CACHE_PASSWORD or None,
        key_prefix=settings.CACHE_KEY_PREFIX,
        max_connections=settings.CACHE_MAX_CONNECTIONS,
        max_reconnect_attempts=settings.CACHE_MAX_RECONNECT_ATTEMPTS,
        connect_timeout_ms=settings.CACHE_CONNECT_TIMEOUT_MS,
        operation_timeout_ms=settings.CACHE_OPERATION_TIMEOUT_MS,
        retry_delay_ms=settings.CACHE_RETRY_DELAY_MS,
        retry_max_delay_ms=settings.CACHE_RETRY_MAX_DELAY_MS,
        health_check_interval=settings.CACHE_HEALTH_CHECK_INTERVAL,
        fallback_capacity=settings.CACHE_FALLBACK_CAPACITY,
        fallback_ttl=settings.CACHE_FALLBACK_TTL,
        sweep_interval=settings.CACHE_SWEEP_INTERVAL,
        routes=settings.CACHE_ROUTES,
    )

    return validate_and_log_config(config)
