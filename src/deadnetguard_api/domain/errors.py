from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# Not frozen: contextlib and Starlette assign __traceback__ while re-raising.
@dataclass(eq=False)
class AppError(Exception):
    code: str
    message: str
    status_code: int = 400
    details: dict[str, Any] | None = None


def validation_error(message: str, details: dict[str, Any] | None = None) -> AppError:
    return AppError(code="validation_error", message=message, status_code=400, details=details)


def channel_not_found() -> AppError:
    return AppError(code="channel_not_found", message="Channel not found", status_code=404)


def auth_required(message: str = "Authentication required") -> AppError:
    return AppError(code="auth_required", message=message, status_code=401)


def invalid_credentials() -> AppError:
    return AppError(code="invalid_credentials", message="Invalid credentials", status_code=401)
