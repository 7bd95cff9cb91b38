"""
Base exception classes for application-wide error handling.

Every domain error carries a human-readable message, a machine-readable
error code and optional details, so workers, services and API views can
report failures in one shape.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or configuration is not acceptable
    ├── ConflictError - State conflicts (held locks, disallowed transitions)
    └── ExternalServiceError - Third-party service failures

Usage:
    from core.exceptions import ExternalServiceError

    raise ExternalServiceError(
        "Payment processor unavailable",
        error_code="PROCESSOR_DOWN",
        details={"status_code": 503},
    )

    # Convert to dict for an API or task response
    try:
        ...
    except BaseApplicationError as e:
        return e.to_dict()

Note:
    These exceptions are for domain errors. DRF handles API-layer
    exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code (class default if omitted)
        details: Additional error context
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API or task responses.

        Example:
            {
                "error": "Order #1042 cannot await payment from paid",
                "error_code": "INVALID_STATE_TRANSITION",
                "details": {"current_status": "paid"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input or configuration fails validation.

    Use for:
    - Required settings that are empty
    - Business rule violations detected before any side effect

    HTTP 400 Bad Request is the appropriate status.
    """

    default_error_code: str = "VALIDATION_ERROR"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current state.

    Use for:
    - A lock held by another worker
    - A state transition the current status does not allow

    HTTP 409 Conflict is the appropriate status.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Third-party API failures and timeouts
    - Unexpected external service responses

    Log the original error for debugging but don't expose internal
    details to clients. HTTP 502 or 503 are appropriate.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
