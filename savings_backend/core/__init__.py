"""
核心模块：配置、日志、错误处理与缓存子系统
"""
