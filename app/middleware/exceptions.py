from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.schemas.response import ErrorResponse, ErrorDetail
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import uuid

logger = logging.getLogger(__name__)

ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    412: "PRECONDITION_FAILED",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_SERVER_ERROR",
}


def _error_code(status_code: int) -> str:
    return ERROR_CODES.get(status_code, f"HTTP_{status_code}")


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    body = ErrorResponse(
        error=ErrorDetail(code=_error_code(status_code), message=message, details=details),
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=str(request.url),
        request_id=request_id
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"Validation error on {request.url.path}: {errors}")
    return _error_response(request, 422, "Request validation failed", {"validation_errors": errors})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render domain errors (``ProgressError`` subclasses) and plain HTTP errors alike."""
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    logger.warning(f"{type(exc).__name__} ({exc.status_code}) on {request.url.path}: {message}")
    return _error_response(
        request,
        exc.status_code,
        message,
        {"error_type": type(exc).__name__},
        headers=getattr(exc, "headers", None)
    )


async def global_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, StarletteHTTPException):
        return await http_exception_handler(request, exc)

    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return _error_response(
        request, 500, "An unexpected error occurred", {"error_type": type(exc).__name__}
    )
