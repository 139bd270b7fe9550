"""
Domain errors. The app-level handler turns each one into

    {"success": false, "errors": [{"msg": ..., "code": ...}]}

with the exception's ``status_code``.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    status_code = 400
    error_code = "BUSINESS_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def as_error(self) -> Dict[str, Any]:
        error = {"msg": self.message, "code": self.error_code}
        if self.details:
            error.update(self.details)
        return error


class ValidationFailedError(AppException):
    """Input that passed schema validation but breaks a business rule."""
    error_code = "VALIDATION_FAILED"


class NotFoundError(AppException):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class ConflictError(AppException):
    """Duplicate period records and reporting-line cycles."""
    status_code = 409
    error_code = "CONFLICT"


class AuthenticationError(AppException):
    status_code = 401
    error_code = "AUTH_FAILED"

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class AccessDeniedError(AppException):
    """Named AccessDeniedError to avoid shadowing the built-in PermissionError."""
    status_code = 403
    error_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)
