"""JSON error envelope shared by every route.

Every error response carries ``{"code", "message", "details", "request_id"}``.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.services.object_storage import ObjectStorageError

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return str(getattr(request.state, "request_id", None) or "unknown")


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: object = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "details": details,
            "request_id": _request_id(request),
        },
    )


def _json_safe(value):
    """Make validation inputs serializable; uploads are reported by name only."""
    if isinstance(value, UploadFile):
        return value.filename or "upload"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def register_error_handlers(app) -> None:
    # fastapi.HTTPException subclasses the Starlette one, so this covers both.
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        if isinstance(detail, dict):
            return error_response(
                request,
                exc.status_code,
                detail.get("code", f"http_{exc.status_code}"),
                detail.get("message", "Request failed"),
                detail.get("details"),
            )
        if isinstance(detail, str) and detail:
            return error_response(request, exc.status_code, f"http_{exc.status_code}", detail)
        return error_response(
            request, exc.status_code, f"http_{exc.status_code}", "Request failed", detail
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            item = {key: value for key, value in error.items() if key != "ctx"}
            if "input" in item:
                item["input"] = _json_safe(item["input"])
            errors.append(item)
        return error_response(request, 422, "validation_error", "Validation error", errors)

    @app.exception_handler(ObjectStorageError)
    async def storage_exception_handler(request: Request, exc: ObjectStorageError):
        logger.warning(
            "storage_error path=%s error=%s request_id=%s",
            request.url.path,
            exc,
            _request_id(request),
        )
        return error_response(request, 502, "storage_error", "Object storage unavailable")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error method=%s path=%s request_id=%s",
            request.method,
            request.url.path,
            _request_id(request),
        )
        return error_response(request, 500, "internal_error", "Internal server error")
