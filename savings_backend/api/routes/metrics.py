"""
监控指标路由

提供 Prometheus 格式的监控指标导出端点。
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from savings_backend.api.deps import get_cache_service
from savings_backend.core.cache.factory import CacheService
from savings_backend.core.cache.metrics import get_cache_metrics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metrics", tags=["监控"])


@router.get(
    "/prometheus",
    response_class=Response,
    summary="导出 Prometheus 指标",
    description="以 Prometheus 格式导出所有监控指标",
)
async def prometheus_metrics():
    """导出 Prometheus 格式的监控指标

    Returns:
        Response: Prometheus 格式的指标数据
    """
    metrics_data = generate_latest()
    return Response(content=metrics_data, media_type=CONTENT_TYPE_LATEST)


@router.get(
    "/cache",
    response_model=dict[str, Any],
    summary="获取缓存指标摘要",
    description="进程视角的缓存命中率和远程缓存连接状态",
)
async def cache_metrics(service: CacheService = Depends(get_cache_service)):
    """获取缓存指标摘要

    Returns:
        dict: 命中率、当前缓存层和连接状态
    """
    hit_rate = get_cache_metrics().get_cache_hit_rate()

    return {
        "cache_enabled": service.config.enabled,
        "backing_store": service.manager.active_tier,
        "connection_state": service.connection.state.value,
        "reconnect_attempts": service.connection.attempts,
        "hit_rate": f"{hit_rate:.2f}%",
        "hit_rate_value": hit_rate,
    }
