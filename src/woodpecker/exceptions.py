"""
Exceptions raised by the training service.

Each exception carries a human-readable message, an error code for API
responses, the HTTP status it maps to and optional details.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes for consistent API error responses."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"

    DUPLICATE_ATTEMPT = "DUPLICATE_ATTEMPT"
    CYCLE_STATE_ERROR = "CYCLE_STATE_ERROR"

    DATABASE_ERROR = "DATABASE_ERROR"


class WoodpeckerError(Exception):
    """
    Base exception for all training service errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code for API responses
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class UnauthorizedError(WoodpeckerError):
    """Raised when the caller cannot be resolved to a user."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(WoodpeckerError):
    """Raised when a resource exists but is owned by someone else."""

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.FORBIDDEN,
            status_code=403,
            details=details,
        )


class NotFoundError(WoodpeckerError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        message = f"{resource_type} with ID '{resource_id}' not found"
        error_details = details or {}
        error_details["resource_type"] = resource_type
        error_details["resource_id"] = str(resource_id)
        super().__init__(
            message=message,
            code=ErrorCode.NOT_FOUND,
            status_code=404,
            details=error_details,
        )


class ValidationError(WoodpeckerError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=error_details,
        )


class DuplicateAttemptError(WoodpeckerError):
    """Raised when an attempt was already recorded for a cycle and puzzle."""

    def __init__(self, cycle_id: int, puzzle_in_set_id: int) -> None:
        super().__init__(
            message="Attempt already recorded for this puzzle in this cycle",
            code=ErrorCode.DUPLICATE_ATTEMPT,
            status_code=400,
            details={"cycle_id": cycle_id, "puzzle_in_set_id": puzzle_in_set_id},
        )


class CycleStateError(WoodpeckerError):
    """Raised when a cycle operation is not allowed in the cycle's current state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.CYCLE_STATE_ERROR,
            status_code=400,
            details=details,
        )


class DatabaseError(WoodpeckerError):
    """Raised when a datastore operation fails."""

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        details = {"operation": operation} if operation else None
        super().__init__(
            message=message,
            code=ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details,
        )
