"""
Savings Back Office Backend Package

储蓄业务后台服务。应用实例位于 savings_backend.main，这里只导出版本信息，
避免导入缓存等子模块时连带初始化整个应用。
"""

from savings_backend.__version__ import __version__, __version_info__

__all__ = ["__version__", "__version_info__"]
