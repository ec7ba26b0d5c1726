"""Service-layer exception taxonomy.

Services raise these; the global handlers in ``qaforum.middleware.error_handler``
turn them into ``{"success": false, "message": ...}`` responses with the
matching status code. Extra keyword arguments are merged into the body.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for every expected, client-facing failure."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, **extra: Any) -> None:  # noqa: ANN401
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class InvalidCredentials(ServiceError):
    status_code = 400
    default_message = "Invalid credentials"


class InsufficientFunds(ServiceError):
    status_code = 400
    default_message = "Insufficient points"


class Unauthorized(ServiceError):
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Resource already exists"

    def __init__(self, message: str | None = None, *, status_code: int = 409, **extra: Any) -> None:  # noqa: ANN401
        super().__init__(message, **extra)
        self.status_code = status_code


class RateLimited(ServiceError):
    status_code = 429
    default_message = "Too many requests"


class UpstreamFailure(ServiceError):
    status_code = 502
    default_message = "Upstream service failed"


class InternalError(ServiceError):
    status_code = 500
    default_message = "Internal server error"
