"""
缓存管理路由

查看当前缓存层的统计信息，按实体类型手动清除缓存。
"""

import logging

from fastapi import APIRouter, Depends

from savings_backend.api.deps import get_cache_service
from savings_backend.api.response_util import success
from savings_backend.core.cache.factory import CacheService
from savings_backend.core.cache.invalidation import ALL
from savings_backend.core.cache.stats import CacheStats
from savings_backend.models.schemas import BaseResponse, CacheClearResult

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/stats", response_model=BaseResponse[CacheStats], summary="获取缓存统计信息")
async def get_cache_stats(service: CacheService = Depends(get_cache_service)):
    """返回当前生效缓存层（remote / memory）的统计信息"""
    stats = await service.manager.stats()
    return success(message="获取缓存统计成功", data=stats)


@router.post("/clear", response_model=BaseResponse[CacheClearResult], summary="清除全部缓存")
@router.post("/clear/{entity_type}", response_model=BaseResponse[CacheClearResult], summary="按实体类型清除缓存")
async def clear_cache(entity_type: str = ALL, service: CacheService = Depends(get_cache_service)):
    """按实体类型清除缓存

    Args:
        entity_type: 实体类型（customer、account、transaction ...），省略时清除全部

    Returns:
        清除的条目数和实体类型
    """
    cleared = await service.invalidation.invalidate(entity_type)
    logger.info(f"管理接口清除缓存: entity_type={entity_type}, cleared={cleared}")
    return success(
        message=f"已清除 {cleared} 个缓存条目",
        data=CacheClearResult(cleared=cleared, entity_type=entity_type),
    )
