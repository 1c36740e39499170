"""
缓存序列化

缓存值在进入任一缓存层之前统一序列化为 JSON 文本，两层各自保存独立副本，
读取时再反序列化。缓存层本身不关心负载结构，由调用方定义自己的数据模型。
"""

import json
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from savings_backend.core.cache.exceptions import CacheSerializationError


def _json_default(obj: Any) -> Any:
    """处理 json 模块不支持的常见类型"""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, uuid.UUID):
        return str(obj)
    # 金额使用字符串保留精度
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"类型 {type(obj).__name__} 无法序列化为 JSON")


def serialize(value: Any, key: str | None = None) -> str:
    """序列化缓存值

    Args:
        value: 要缓存的值
        key: 缓存键（仅用于错误信息）

    Returns:
        str: JSON 文本

    Raises:
        CacheSerializationError: 值无法序列化
    """
    try:
        if isinstance(value, BaseModel):
            return value.model_dump_json()
        return json.dumps(value, ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError, RecursionError) as e:
        raise CacheSerializationError(f"数据序列化失败 (type={type(value).__name__}): {e}", key=key) from e


def deserialize(raw: str | bytes, key: str | None = None) -> Any:
    """反序列化缓存值

    Args:
        raw: 缓存中保存的 JSON 文本
        key: 缓存键（仅用于错误信息）

    Returns:
        反序列化后的值

    Raises:
        CacheSerializationError: 数据损坏或不是合法 JSON
    """
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, UnicodeDecodeError, RecursionError) as e:
        raise CacheSerializationError(f"缓存数据反序列化失败: {e}", key=key) from e
