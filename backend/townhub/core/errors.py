"""
Centralized error types for the notification core.
Services raise these; main.py maps them to JSON responses so routes stay thin.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

# HTTP status codes for known error categories
STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404


class TownHubError(Exception):
    """Base for errors that abort an operation with no side effects."""

    status_code = STATUS_BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str | None = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


class Unauthorized(TownHubError):
    status_code = STATUS_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(TownHubError):
    status_code = STATUS_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFound(TownHubError):
    status_code = STATUS_NOT_FOUND
    default_message = "Not found"


class InvalidInput(TownHubError):
    status_code = STATUS_BAD_REQUEST
    default_message = "Missing required fields"


class QuotaExceeded(TownHubError):
    """Gate rejection: the owner has no quota left for this resource this month."""

    status_code = STATUS_FORBIDDEN
    default_message = "Monthly quota exceeded"

    def __init__(self, message: str | None = None, quota: dict[str, Any] | None = None):
        super().__init__(message, quota=quota or {})
        self.quota = quota or {}


async def townhub_error_handler(request: Request, exc: TownHubError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
