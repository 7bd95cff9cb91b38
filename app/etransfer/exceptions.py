"""
E-transfer specific exceptions.

Exception Hierarchy:
    EtransferError (base for processor API failures, inherits ExternalServiceError)
    ├── AuthError - Client-credentials exchange failed
    ├── TransportError - Network failure, timeout or 5xx (transient)
    ├── ResponseFormatError - Malformed JSON or unexpected response shape
    └── RemoteRejection - Well-formed response with success=false

    LockAcquisitionError - Distributed lock not acquired (inherits ConflictError)
    ReconciliationLockError - A sweep is already running (inherits ConflictError)
    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)
    GatewayUnavailableError - Gateway disabled or not configured (inherits ValidationError)

Usage:
    from etransfer.exceptions import EtransferError, AuthError

    try:
        link = client.request_payment_link(request)
    except EtransferError as e:
        return ServiceResult.failure(e.message, error_code=e.error_code)

Retry policy:
    Nothing in this module is retried inline. TransportError is marked
    is_retryable so the next scheduled sweep picks the work up again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ConflictError, ExternalServiceError, ValidationError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Processor API Exceptions
# =============================================================================


class EtransferError(ExternalServiceError):
    """
    Base exception for all e-transfer processor API failures.

    Attributes:
        is_retryable: Whether a later attempt can succeed without changes
        operation: API operation that failed (e.g. "request_payment_link")
    """

    default_error_code: str = "ETRANSFER_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, error_code=error_code, details=details)
        self.operation = operation


class AuthError(EtransferError):
    """
    Client-credentials exchange failed.

    Blocks every authenticated call until the next attempt. The cached
    credential is left untouched when this is raised.

    Example:
        raise AuthError(
            "Invalid response from OAuth server",
            details={"reason": "missing access_token"},
        )
    """

    default_error_code: str = "AUTH_FAILED"


class TransportError(EtransferError):
    """
    Network failure, timeout or server-side (5xx) error.

    The request may or may not have reached the processor. Reconciliation
    retries naturally on its next scheduled run; checkout surfaces the
    failure to the customer.
    """

    default_error_code: str = "TRANSPORT_ERROR"
    is_retryable: bool = True


class ResponseFormatError(EtransferError):
    """
    Response body was not valid JSON or lacked required fields.

    Non-retryable for the call that produced it.
    """

    default_error_code: str = "INVALID_RESPONSE"


class RemoteRejection(EtransferError):
    """
    Processor answered with success=false.

    The remote message is kept verbatim in ``message`` so it can be shown
    to the customer.
    """

    default_error_code: str = "REMOTE_REJECTED"


# =============================================================================
# Configuration Exceptions
# =============================================================================


class GatewayUnavailableError(ValidationError):
    """
    Raised when the gateway is disabled or a required setting is empty.

    details["missing"] lists the labels of the empty settings.
    """

    default_error_code: str = "GATEWAY_UNAVAILABLE"


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Example:
        lock = DistributedLock("etransfer:token-refresh", ttl=60, timeout=10)
        lock.acquire()  # raises LockAcquisitionError after 10s
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


class ReconciliationLockError(ConflictError):
    """
    Raised when a reconciliation sweep is already in progress.

    The scheduled worker treats this as a skip, not a failure.
    """

    default_error_code: str = "RECONCILIATION_LOCKED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when an order FSM transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed with our error format.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


__all__ = [
    "AuthError",
    "EtransferError",
    "GatewayUnavailableError",
    "InvalidStateTransitionError",
    "LockAcquisitionError",
    "ReconciliationLockError",
    "RemoteRejection",
    "ResponseFormatError",
    "TransportError",
]
