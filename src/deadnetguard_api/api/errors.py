from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from deadnetguard_api.domain.errors import AppError
from deadnetguard_api.settings import get_settings

logger = logging.getLogger(__name__)

# Store outages and timeouts: the request may be retried as-is.
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (OperationalError, PoolTimeoutError, TimeoutError)


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
        headers=headers,
    )


def _validation_issues(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _handle_app_error(_request: Request, exc: AppError) -> JSONResponse:
        return _error_response(exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "validation_error",
            "Invalid request data",
            {"issues": _validation_issues(exc)},
        )

    async def _handle_transient_error(request: Request, exc: Exception) -> JSONResponse:
        logger.warning(
            "store_unavailable",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exc_type": type(exc).__name__,
            },
        )
        return _error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "store_unavailable",
            "Service temporarily unavailable, please retry",
            headers={"Retry-After": str(get_settings().store_retry_after_seconds)},
        )

    for error_type in TRANSIENT_ERRORS:
        app.add_exception_handler(error_type, _handle_transient_error)

    @app.exception_handler(Exception)
    async def _handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            extra={"path": request.url.path, "method": request.method},
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_server_error",
            "An internal server error occurred",
        )
