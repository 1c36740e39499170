"""
FastAPI 缓存中间件

对注册过的只读路由做读穿透缓存：
命中时直接返回缓存的响应体，未命中时执行处理器，并在后台把成功的 JSON 响应写入缓存。
缓存的任何错误只记录日志，请求始终返回处理器的真实结果。
"""

import json
import logging
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from savings_backend.core.cache.manager import CacheManager

logger = logging.getLogger(__name__)

CACHEABLE_METHODS = ("GET",)
BYPASS_PARAM = "nocache"


class CacheMiddleware(BaseHTTPMiddleware):
    """FastAPI 缓存中间件

    只缓存 routes 中登记的 GET 路由，路由表为 路径前缀 -> 缓存时间（秒）。
    """

    def __init__(self, app, cache_manager: CacheManager, routes: dict[str, int] | None = None):
        """初始化缓存中间件

        Args:
            app: ASGI 应用
            cache_manager: 缓存管理器实例
            routes: 路径前缀 -> 缓存时间（秒）
        """
        super().__init__(app)
        self.cache_manager = cache_manager
        # 长前缀优先匹配
        self.routes = sorted((routes or {}).items(), key=lambda item: len(item[0]), reverse=True)

        logger.info(f"缓存中间件已初始化: {len(self.routes)} 个缓存路由")

    def resolve_ttl(self, path: str) -> int | None:
        """查找路径对应的缓存时间，未登记的路径返回 None"""
        for prefix, ttl in self.routes:
            base = prefix.rstrip("/")
            if path == prefix or path == base or path.startswith(base + "/"):
                return ttl
        return None

    def build_cache_key(self, request: Request) -> str:
        """缓存键 = 命名空间 + 完整路径 + 原始查询字符串"""
        path_and_query = request.url.path
        if request.url.query:
            path_and_query = f"{path_and_query}?{request.url.query}"
        return self.cache_manager.build_key(path_and_query)

    async def dispatch(self, request: Request, call_next):
        """处理请求

        Args:
            request: 请求对象
            call_next: 下一个中间件或路由处理器

        Returns:
            Response: 缓存的响应或处理器的响应
        """
        if request.method not in CACHEABLE_METHODS:
            return await call_next(request)

        ttl = self.resolve_ttl(request.url.path)
        if ttl is None:
            return await call_next(request)

        if request.query_params.get(BYPASS_PARAM) == "true":
            logger.debug(f"请求跳过缓存: {request.url.path}")
            return await call_next(request)

        try:
            cache_key = self.build_cache_key(request)
            cached_payload = await self.cache_manager.get(cache_key)
        except Exception as e:
            logger.warning(f"缓存读取失败，按未命中处理 ({request.url.path}): {e}")
            return await call_next(request)

        if cached_payload is not None:
            logger.debug(f"缓存命中: {cache_key}")
            return JSONResponse(content=cached_payload, headers={"X-Cache": "HIT"})

        return await self._handle_cache_miss(request, call_next, cache_key, ttl)

    async def _handle_cache_miss(self, request: Request, call_next, cache_key: str, ttl: int) -> Response:
        """执行处理器，截获 JSON 响应体并在后台写入缓存"""
        start_time = time.time()
        response = await call_next(request)
        response_time = f"{time.time() - start_time:.3f}s"

        if not 200 <= response.status_code < 300:
            return response

        # 非 JSON 响应不会被缓存，直接透传，不读取响应体
        if "application/json" not in response.headers.get("content-type", ""):
            response.headers["X-Cache"] = "MISS"
            response.headers["X-Response-Time"] = response_time
            return response

        response_body = b""
        async for chunk in response.body_iterator:  # type: ignore[attr-defined]
            response_body += chunk

        self._store(cache_key, response_body, ttl)

        new_response = Response(content=response_body, status_code=response.status_code)
        # 保留原始响应头（包括重复的 Set-Cookie）
        new_response.raw_headers = list(response.headers.raw)
        new_response.headers["X-Cache"] = "MISS"
        new_response.headers["X-Response-Time"] = response_time
        return new_response

    def _store(self, cache_key: str, response_body: bytes, ttl: int) -> None:
        """只缓存 JSON 对象且未标记 success=false 的响应

        任何错误（包括嵌套过深的 JSON）只记录日志，不影响返回给客户端的响应。
        """
        try:
            payload = json.loads(response_body)
            if not isinstance(payload, dict) or payload.get("success") is False:
                return
            self.cache_manager.set_in_background(cache_key, payload, ttl)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"响应不是合法 JSON，跳过缓存 (key={cache_key}): {e}")
        except Exception as e:
            logger.error(f"缓存响应失败 (key={cache_key}): {type(e).__name__}: {e}")
