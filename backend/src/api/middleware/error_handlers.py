"""Exception handlers giving every API error the same JSON body."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...services.vault import WorkspaceError

logger = logging.getLogger(__name__)


class ErrorBody(BaseModel):
    """``{"error", "message", "detail"}`` returned for every failed request."""

    error: str
    message: str
    detail: Optional[Dict[str, Any]] = None


ERROR_CODES: Dict[int, ErrorBody] = {
    code: ErrorBody(error=error, message=message)
    for code, (error, message) in {
        status.HTTP_400_BAD_REQUEST: ("validation_error", "Invalid request payload"),
        status.HTTP_404_NOT_FOUND: ("not_found", "Resource not found"),
        status.HTTP_405_METHOD_NOT_ALLOWED: ("method_not_allowed", "Method not allowed"),
        status.HTTP_409_CONFLICT: ("conflict", "Graph view already open"),
        status.HTTP_503_SERVICE_UNAVAILABLE: ("not_ready", "Server is still starting"),
        status.HTTP_500_INTERNAL_SERVER_ERROR: ("internal_error", "Internal server error"),
    }.items()
}


def error_body(status_code: int, detail: Any = None) -> ErrorBody:
    """
    Merge ``detail`` into the default body for ``status_code``.

    ``detail`` may be a message string or a dict carrying any of ``error``,
    ``message`` and ``detail``; other dict keys end up under ``detail``.
    """
    default = ERROR_CODES.get(status_code, ERROR_CODES[status.HTTP_500_INTERNAL_SERVER_ERROR])
    if isinstance(detail, str) and detail:
        return default.model_copy(update={"message": detail})
    if not isinstance(detail, dict):
        return default

    extra = detail.get("detail")
    if extra is None:
        extra = {k: v for k, v in detail.items() if k not in {"error", "message"}} or None
    return ErrorBody(
        error=detail.get("error", default.error),
        message=detail.get("message", default.message),
        detail=extra,
    )


def _response(status_code: int, detail: Any = None) -> JSONResponse:
    body = error_body(status_code, detail)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    return _response(status.HTTP_400_BAD_REQUEST, {"detail": {"errors": errors}})


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _response(exc.status_code, exc.detail)


async def workspace_exception_handler(
    request: Request, exc: WorkspaceError
) -> JSONResponse:
    logger.warning("Rejected path on %s: %s", request.url.path, exc)
    return _response(
        status.HTTP_400_BAD_REQUEST, {"error": "invalid_path", "message": str(exc)}
    )


async def internal_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return _response(status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_error_handlers(app: FastAPI) -> None:
    """Attach shared exception handlers to the FastAPI application."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(WorkspaceError, workspace_exception_handler)
    app.add_exception_handler(Exception, internal_exception_handler)


__all__ = [
    "ErrorBody",
    "error_body",
    "register_error_handlers",
    "validation_exception_handler",
    "http_exception_handler",
    "workspace_exception_handler",
    "internal_exception_handler",
]
