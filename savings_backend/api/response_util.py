"""响应工具模块 - 提供统一的API响应格式化函数"""

from typing import TypeVar

from savings_backend.models.schemas import BaseResponse

T = TypeVar("T")


def success(message: str | None = None, data: T | None = None) -> BaseResponse[T | None]:
    """创建成功响应

    Args:
        message: 响应消息
        data: 响应数据

    Returns:
        BaseResponse: 成功响应对象
    """
    return BaseResponse[T | None](success=True, message=message or "", data=data)
