"""
缓存日志记录模块

提供结构化的 JSON 日志格式，记录缓存读写、失效、降级和远程连接状态变化。
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any


class CacheLogger:
    """缓存日志记录器

    每个事件输出一行 JSON，包含时间戳、操作类型和所在缓存层。
    """

    def __init__(self, logger_name: str = "savings_backend.core.cache"):
        """初始化缓存日志记录器

        Args:
            logger_name: 日志记录器名称
        """
        self.logger = logging.getLogger(logger_name)

    def _format_log(self, level: str, operation: str, **kwargs) -> str:
        """格式化日志为 JSON 字符串

        Args:
            level: 日志级别（INFO, WARNING, ERROR）
            operation: 操作类型
            **kwargs: 其他日志字段

        Returns:
            str: JSON 格式的日志字符串
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "operation": operation,
            "source": "CacheManager",
            **kwargs,
        }
        return json.dumps(log_data, ensure_ascii=False, default=str)

    def log_cache_get(self, key: str, hit: bool, tier: str, latency_ms: float, error: str | None = None) -> None:
        """记录缓存读取

        Args:
            key: 缓存键
            hit: 是否命中缓存
            tier: 缓存层（remote, memory）
            latency_ms: 操作延迟（毫秒）
            error: 错误信息（可选）
        """
        log_data: dict[str, Any] = {"key": key, "hit": hit, "tier": tier, "latency_ms": round(latency_ms, 2)}

        if error:
            log_data["error"] = error
            self.logger.warning(self._format_log(level="WARNING", operation="cache_get", **log_data))
        else:
            self.logger.debug(self._format_log(level="DEBUG", operation="cache_get", **log_data))

    def log_cache_set(
        self,
        key: str,
        success: bool,
        tier: str,
        ttl: int | None = None,
        latency_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """记录缓存写入

        Args:
            key: 缓存键
            success: 操作是否成功
            tier: 缓存层
            ttl: 请求的过期时间（秒）
            latency_ms: 操作延迟（毫秒）
            error: 错误信息（可选）
        """
        log_data: dict[str, Any] = {"key": key, "success": success, "tier": tier}

        if ttl is not None:
            log_data["ttl"] = ttl

        if latency_ms is not None:
            log_data["latency_ms"] = round(latency_ms, 2)

        if error:
            log_data["error"] = error

        if success:
            self.logger.debug(self._format_log(level="DEBUG", operation="cache_set", **log_data))
        else:
            self.logger.warning(self._format_log(level="WARNING", operation="cache_set", **log_data))

    def log_cache_invalidate(
        self,
        tier: str,
        key: str | None = None,
        pattern: str | None = None,
        count: int = 0,
        success: bool = True,
        error: str | None = None,
    ) -> None:
        """记录缓存失效

        Args:
            tier: 缓存层
            key: 缓存键（单键失效）
            pattern: 缓存键模式（批量失效）
            count: 删除的键数量
            success: 操作是否成功
            error: 错误信息（可选）
        """
        log_data: dict[str, Any] = {"tier": tier, "success": success}

        if key:
            log_data["key"] = key

        if pattern:
            log_data["pattern"] = pattern
            log_data["count"] = count

        if error:
            log_data["error"] = error

        level = "INFO" if success else "WARNING"
        log_msg = self._format_log(level=level, operation="cache_invalidate", **log_data)

        if success:
            self.logger.info(log_msg)
        else:
            self.logger.warning(log_msg)

    def log_cache_degradation(
        self, reason: str, operation: str, key: str | None = None, error: str | None = None, fallback: str = "memory"
    ) -> None:
        """记录缓存降级事件

        Args:
            reason: 降级原因（remote_unavailable, remote_error, serialization_error, ...）
            operation: 触发降级的操作
            key: 相关的缓存键（可选）
            error: 错误信息（可选）
            fallback: 降级后的回退方案
        """
        log_data = {"reason": reason, "original_operation": operation, "fallback": fallback}

        if key:
            log_data["key"] = key

        if error:
            log_data["error"] = error

        self.logger.warning(self._format_log(level="WARNING", operation="cache_degradation", **log_data))

    def log_state_change(self, previous: str, current: str, event: str, detail: str | None = None) -> None:
        """记录远程缓存连接状态变化

        Args:
            previous: 原状态
            current: 新状态
            event: 触发事件
            detail: 附加信息（错误原因等）
        """
        log_data = {"previous": previous, "current": current, "event": event}
        if detail:
            log_data["detail"] = detail

        if current in ("connected", "connecting"):
            self.logger.info(self._format_log(level="INFO", operation="connection_state", **log_data))
        else:
            self.logger.warning(self._format_log(level="WARNING", operation="connection_state", **log_data))

    def log_cache_disabled(self, reason: str = "config_enabled_false") -> None:
        """记录远程缓存禁用事件

        Args:
            reason: 禁用原因
        """
        self.logger.info(self._format_log(level="INFO", operation="cache_disabled", reason=reason))


# 全局缓存日志记录器实例
_cache_logger: CacheLogger | None = None


def get_cache_logger() -> CacheLogger:
    """获取全局缓存日志记录器实例

    Returns:
        CacheLogger: 缓存日志记录器实例
    """
    global _cache_logger
    if _cache_logger is None:
        _cache_logger = CacheLogger()
    return _cache_logger
