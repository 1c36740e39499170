"""
缓存子系统异常

这些异常只在缓存包内部流转，CacheManager 会把它们转换为中性结果（None/False/0），
不会传递到请求处理流程。
"""


class CacheError(Exception):
    """缓存异常基类"""

    def __init__(self, message: str, key: str | None = None):
        self.message = message
        self.key = key
        super().__init__(message)


class CacheSerializationError(CacheError):
    """缓存数据序列化/反序列化失败"""
