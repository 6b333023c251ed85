from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import status
from catalog_server.app.platform.logging import correlation_id_ctx
from catalog_server.app.platform import exceptions as domainex
import logging

def error_envelope(message, code="BAD_REQUEST", details=None, trace_id=None):
    return {
        "success": False,
        "error": {
            "code": code, "message": message, "details": details
        },
        "trace_id": trace_id
    }

async def http_exception_handler(request: Request, exc: HTTPException):
    # 4xx, 5xx 에러
    return JSONResponse(status_code=exc.status_code,
                        content=error_envelope(
                            exc.detail,
                            code=f"HTTP_{exc.status_code}",
                            trace_id=correlation_id_ctx.get()))

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # 422 Unprocessable Entity
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                        content=error_envelope(
                            "Unprocessable Entity",
                            code="VALIDATION_ERROR",
                            details=exc.errors(),
                            trace_id=correlation_id_ctx.get()))

async def unhandled_exception_handler(request: Request, exc: Exception):
    logging.getLogger(__name__).exception("Unhandled exception")
    # 500 Internal server error
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        content=error_envelope(
                            "Internal server error",
                            code="INTERNAL_ERROR",
                            trace_id=correlation_id_ctx.get()))

def map_domain_error(exc: domainex.DomainError) -> tuple[int, str]:
    """
    도메인 예외를 (HTTP 상태, 에러 코드)로 매핑.
    하위 클래스를 먼저 검사한다.
    """
    if isinstance(exc, domainex.ResourceNotFound):
        return status.HTTP_404_NOT_FOUND, "NOT_FOUND"
    if isinstance(exc, domainex.FieldCodecError):
        return status.HTTP_400_BAD_REQUEST, "INVALID_FIELD"
    if isinstance(exc, domainex.MalformedFilterSpec):
        return status.HTTP_400_BAD_REQUEST, "MALFORMED_FILTER"
    if isinstance(exc, domainex.InvalidInput):
        return status.HTTP_400_BAD_REQUEST, "INVALID_INPUT"
    if isinstance(exc, domainex.PermissionDenied):
        return status.HTTP_403_FORBIDDEN, "PERMISSION_DENIED"
    if isinstance(exc, domainex.IndexingFailed):
        return status.HTTP_502_BAD_GATEWAY, "INDEXING_FAILED"
    if isinstance(exc, domainex.TransportError):
        return status.HTTP_502_BAD_GATEWAY, "ENGINE_UNAVAILABLE"
    return status.HTTP_400_BAD_REQUEST, "SERVICE_ERROR"

async def domain_exception_handler(request: Request, exc: domainex.DomainError):
    """
    도메인/유즈케이스 예외를 HTTP로 매핑.
    """
    http_status, code = map_domain_error(exc)

    logging.getLogger(__name__).warning(
        "Domain error: %s (%s) path=%s", exc, code, str(request.url)
    )
    return JSONResponse(
        status_code=http_status,
        content=error_envelope(
            str(exc),
            code=code,
            trace_id=correlation_id_ctx.get())
    )
