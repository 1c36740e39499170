"""
错误处理中间件
提供统一的异常处理和错误响应
"""

import logging
import traceback
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from savings_backend.core.logging import app_logger, log_exception

DEFAULT_ERROR_CODE_BY_STATUS: Dict[int, str] = {
    400: "40000",
    401: "40001",
    403: "40003",
    404: "40004",
    405: "40005",
    409: "40009",
    422: "40022",
    429: "40029",
    500: "50000",
    503: "50003",
}


def resolve_error_code(status_code: int, details: Optional[Dict[str, Any]] = None) -> str:
    if isinstance(details, dict):
        raw_code = details.get("code")
        if isinstance(raw_code, str) and raw_code:
            return raw_code
    return DEFAULT_ERROR_CODE_BY_STATUS.get(status_code, "99999")


def build_error_body(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """构建统一的错误响应体"""
    return {
        "success": False,
        "error": {
            "code": resolve_error_code(status_code, details),
            "type": error_type,
            "message": message,
            "details": details or {},
            "request_id": request_id or str(uuid.uuid4()),
            "path": request.url.path,
            "timestamp": datetime.now().isoformat(),
        },
    }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """错误处理中间件：记录请求日志，兜底未捕获的异常"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        start_time = datetime.now()

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        app_logger.debug(f"请求开始: {method} {path} - ID={request_id} - IP={client_ip}")

        try:
            response = await call_next(request)
        except Exception as exc:
            log_exception(app_logger, f"未捕获的异常 {method} {path}", exception=exc, reraise=False)

            body = build_error_body(
                request,
                status_code=500,
                error_type="INTERNAL_SERVER_ERROR",
                message="服务器内部错误",
                request_id=request_id,
            )
            if app_logger.level <= logging.DEBUG:
                body["error"]["debug_info"] = {"stack_trace": traceback.format_exc()}
            return JSONResponse(status_code=500, content=body, headers={"X-Request-ID": request_id})

        processing_time = (datetime.now() - start_time).total_seconds() * 1000
        app_logger.info(
            f"请求完成: {method} {path} - ID={request_id} - Status={response.status_code} - Time={processing_time:.2f}ms"
        )

        response.headers["X-Request-ID"] = request_id
        return response


class APIError(Exception):
    """自定义API错误类"""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_type: str = "API_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(APIError):
    """数据验证错误"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=422, error_type="VALIDATION_ERROR", details=details)


class NotFoundError(APIError):
    """资源未找到错误"""

    def __init__(self, message: str = "资源不存在"):
        super().__init__(message=message, status_code=404, error_type="NOT_FOUND_ERROR")


class ServiceUnavailableError(APIError):
    """依赖的服务尚未就绪"""

    def __init__(self, message: str = "服务暂不可用", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=503, error_type="SERVICE_UNAVAILABLE", details=details)


def setup_exception_handlers(app):
    """设置FastAPI异常处理器"""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """处理自定义API错误"""
        body = build_error_body(request, exc.status_code, exc.error_type, exc.message, exc.details)

        app_logger.warning(
            f"API 错误: {request.method} {request.url.path} - ID={body['error']['request_id']} "
            f"- Type={exc.error_type} - Message={exc.message}"
        )
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """处理HTTP异常（404、405 等）"""
        body = build_error_body(request, exc.status_code, "HTTP_EXCEPTION", str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """处理请求参数校验错误"""
        app_logger.warning(f"请求参数校验失败: {request.method} {request.url.path} - {exc.errors()}")
        body = build_error_body(
            request, 422, "VALIDATION_ERROR", "请求参数校验失败", {"errors": jsonable_errors(exc)}
        )
        return JSONResponse(status_code=422, content=body)


def jsonable_errors(exc: RequestValidationError) -> list:
    """校验错误中可能包含不可序列化的上下文对象，只保留基本字段"""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
