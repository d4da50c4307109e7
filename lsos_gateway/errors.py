"""
API error types.

Domain code raises these; api/rest/error_handlers.py renders them as
{"error": {"code", "message", "status", "details"}}.
"""

from typing import Any


class ApiError(Exception):
    status: int = 500
    code: str = "server_error"

    def __init__(self, message: str, details: Any = None, headers: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.headers = headers or {}

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "status": self.status,
            "details": self.details,
        }


class InvalidQuery(ApiError):
    status = 400
    code = "invalid_query"


class Unauthenticated(ApiError):
    status = 401
    code = "unauthenticated"


class Forbidden(ApiError):
    status = 403
    code = "forbidden"


class NotFound(ApiError):
    status = 404
    code = "not_found"

    @classmethod
    def resource(cls, resource: str, public_id: str) -> "NotFound":
        return cls(f"{resource.capitalize()} '{public_id}' not found", details={"resource": resource, "id": public_id})


class ValidationFailed(ApiError):
    status = 422
    code = "validation_error"


class InvalidStatusTransition(ValidationFailed):
    code = "invalid_status_transition"


class RateLimitExceeded(ApiError):
    status = 429
    code = "rate_limited"
