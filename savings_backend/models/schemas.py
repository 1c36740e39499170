"""
Pydantic 模型定义

用于 API 响应的数据验证与序列化。
"""

from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class BaseResponse(BaseModel, Generic[T]):
    """基础 API 响应"""

    success: bool = True
    message: str = ""
    data: Optional[T] = None


class CacheClearResult(BaseModel):
    """缓存清除结果"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    cleared: int = Field(description="删除的缓存条目数")
    entity_type: str = Field(description="实体类型")


class CacheHealth(BaseModel):
    """缓存子系统健康状态"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool
    state: str
    backing_store: Literal["remote", "memory"]
    remote_healthy: Optional[bool] = None


class HealthResponse(BaseModel):
    """健康检查响应"""

    status: Literal["healthy", "degraded"]
    version: str
    cache: CacheHealth
