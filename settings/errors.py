from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTP error carrying a machine-readable code alongside the message.

    Rendered as ``{"error": ..., "message": ..., "details": ...}`` by the
    handlers registered in :func:`register_exception_handlers`.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        message: Optional[str] = None,
        details: Optional[List[Dict[str, str]]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message or error)
        self.error = error
        self.message = message
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.message:
            body["message"] = self.message
        if self.details is not None:
            body["details"] = self.details
        return body


class DatabaseUnavailableError(Exception):
    pass


def validation_error(details: List[Dict[str, str]], message: str = "Request validation failed.") -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, "validation_error", message, details=details)


def _issue_path(loc: tuple) -> str:
    # drop the "body" / "query" prefix FastAPI adds
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)


HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Framework and fastapi-users errors in the same shape as ``ApiError``."""
    headers = getattr(exc, "headers", None)
    if exc.status_code in (status.HTTP_204_NO_CONTENT, status.HTTP_304_NOT_MODIFIED):
        return Response(status_code=exc.status_code, headers=headers)
    # fastapi-users raises ErrorCode members, a str Enum
    detail = getattr(exc.detail, "value", exc.detail)
    if isinstance(detail, dict):
        # fastapi-users: {"code": ..., "reason": ...}
        code = detail.get("code", "error")
        error, message = str(getattr(code, "value", code)), detail.get("reason")
    else:
        error = HTTP_ERROR_CODES.get(exc.status_code, str(detail))
        message = str(detail)
    body: Dict[str, Any] = {"error": error}
    if message:
        body["message"] = message
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [{"path": _issue_path(tuple(e.get("loc", ()))), "message": e.get("msg", "invalid")} for e in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "validation_error", "message": "Request validation failed.", "details": details},
    )


async def database_unavailable_handler(request: Request, exc: DatabaseUnavailableError) -> JSONResponse:
    logger.error("Database unavailable while serving %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "database_unavailable", "message": "Database is not reachable. Check SURREALDB_* settings."},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "server_error", "message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DatabaseUnavailableError, database_unavailable_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
