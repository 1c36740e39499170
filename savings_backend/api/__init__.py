"""
API routes module - 统一注册所有路由
"""

from fastapi import APIRouter

from savings_backend.api.routes import cache, metrics

# 创建主 APIRouter
api_router = APIRouter()

# 缓存管理路由
api_router.include_router(cache.router, prefix="/cache", tags=["cache"])

# 监控指标路由（路由自身已包含 /metrics 前缀）
api_router.include_router(metrics.router, prefix="")

__all__ = ["api_router"]
