"""Application error taxonomy.

Services raise these; ``casehub.main`` maps each one to an HTTP status and the
``{"error": {"code", "message", "details"}}`` envelope.
"""

from typing import Any, Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class ValidationError(AppError):
    status_code = 422
    code = "VALIDATION_ERROR"

    @classmethod
    def for_field(cls, field: str, problem: str) -> "ValidationError":
        return cls(problem, details=[{"field": field, "message": problem}])


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class InvalidTransitionError(ConflictError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, current: str, requested: str):
        super().__init__(
            f"Cannot move {entity} from '{current}' to '{requested}'",
            details=[{"field": "status", "current": current, "requested": requested}],
        )
        self.current = current
        self.requested = requested


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTH_TOKEN_INVALID"


class InvalidCredentialsError(AuthenticationError):
    code = "AUTH_INVALID_CREDENTIALS"


class AuthorizationError(AppError):
    status_code = 403
    code = "INSUFFICIENT_PERMISSIONS"


class DependencyError(AppError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"
