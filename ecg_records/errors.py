"""Exception hierarchy for record lookup and URL issuance."""

from typing import Any, Optional

from .types import ErrorCode


class RecordServiceError(Exception):
    """Base class for all service errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInputError(RecordServiceError):
    """Caller supplied an empty or malformed identifier, key or TTL."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: Optional[str] = None):
        details = [{"field": field, "message": message, "code": self.code.value}] if field else None
        super().__init__(message, details)
        self.field = field


class MissingParameterError(InvalidInputError):
    """A required query parameter was absent or blank."""

    code = ErrorCode.MISSING_REQUIRED_FIELD


class RecordNotFoundError(RecordServiceError):
    """No candidate key matched an existing object."""

    code = ErrorCode.RECORD_NOT_FOUND


class BackendError(RecordServiceError):
    """The object store failed with something other than a 404."""

    code = ErrorCode.BACKEND_ERROR

    def __init__(
        self,
        message: str,
        error_code: str = "Unknown",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code

    @property
    def access_denied(self) -> bool:
        return self.error_code in ("AccessDenied", "403", "Forbidden") or self.status_code == 403


class CircuitOpenError(RecordServiceError):
    """The S3 circuit breaker is open and no fallback was supplied."""

    code = ErrorCode.SERVICE_UNAVAILABLE
