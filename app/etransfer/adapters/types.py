"""
Data types exchanged with the e-transfer processor API.

Every remote response is parsed into one of these shapes before the rest
of the app sees it. Parsers raise ResponseFormatError when a required
field is missing, so services never index into raw JSON.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from etransfer.exceptions import ResponseFormatError

if TYPE_CHECKING:
    from etransfer.models import Order


# =============================================================================
# Configuration
# =============================================================================

SIGNUP_PATH = "/customer/register"
PASSWORD_RESET_PATH = "/customer/password-reset/request"


@dataclass(frozen=True)
class GatewayConfig:
    """
    Connection settings for one processor account.

    Attributes:
        account_uuid: Merchant account identifier sent with every request
        client_id: OAuth client id
        client_secret: OAuth client secret (never logged)
        api_endpoint: Transactional API root, e.g. https://pay.example.com/api/v1
    """

    account_uuid: str
    client_id: str
    client_secret: str = field(repr=False)
    api_endpoint: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "api_endpoint", self.api_endpoint.rstrip("/"))

    @property
    def base_url(self) -> str:
        """
        Scheme, host and port of the API endpoint.

        OAuth and login live at the account root, not under the
        configured API path.
        """
        parts = urlsplit(self.api_endpoint)
        base = f"{parts.scheme}://{parts.hostname}"
        if parts.port:
            base += f":{parts.port}"
        return base

    @property
    def signup_url(self) -> str:
        return f"{self.base_url}{SIGNUP_PATH}"

    @property
    def password_reset_url(self) -> str:
        return f"{self.base_url}{PASSWORD_RESET_PATH}"

    @property
    def fingerprint(self) -> str:
        """Digest identifying the settings a credential was issued under."""
        raw = f"{self.client_id}|{self.client_secret}|{self.api_endpoint}"
        return hashlib.sha256(raw.encode()).hexdigest()


# =============================================================================
# Credentials
# =============================================================================


@dataclass(frozen=True)
class Credential:
    """
    OAuth bearer credential.

    Attributes:
        access_token: Opaque bearer token
        expires_at: Absolute expiry (timezone-aware)
        config_fingerprint: GatewayConfig.fingerprint at issue time
    """

    access_token: str = field(repr=False)
    expires_at: datetime
    config_fingerprint: str = ""

    def is_valid(self, now: datetime, fingerprint: str) -> bool:
        return self.expires_at > now and self.config_fingerprint == fingerprint


# =============================================================================
# Results
# =============================================================================


def _require_mapping(value: Any, what: str, operation: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ResponseFormatError(
            f"Invalid response structure from payment gateway: {what} is not an object",
            operation=operation,
        )
    return value


@dataclass(frozen=True)
class LoginResult:
    """
    Decoded response of the customer login endpoint.

    The caller decides what ``success`` means; the raw body is kept so
    extra fields returned by the processor are not lost.
    """

    success: bool
    message: str | None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Any) -> LoginResult:
        body = _require_mapping(payload, "response", "authenticate_user")
        message = body.get("message")
        return cls(
            success=body.get("success") is True,
            message=str(message) if message is not None else None,
            raw=body,
        )


@dataclass(frozen=True)
class RemoteTransaction:
    """
    Transaction record owned by the processor.

    Attributes:
        reference: Processor-assigned reference (join key with orders)
        status: Processor status, stored verbatim
        created_at: Creation timestamp as reported by the processor
    """

    reference: str
    status: str
    created_at: str | None = None

    @classmethod
    def from_payload(cls, payload: Any, operation: str) -> RemoteTransaction:
        item = _require_mapping(payload, "transaction", operation)
        reference = item.get("reference")
        status = item.get("status")
        if not reference or not isinstance(status, str) or not status:
            raise ResponseFormatError(
                "Invalid response structure from payment gateway: "
                "transaction is missing reference or status",
                operation=operation,
            )
        created_at = item.get("created_at")
        return cls(
            reference=str(reference),
            status=status,
            created_at=str(created_at) if created_at is not None else None,
        )


@dataclass(frozen=True)
class PaymentLinkRequest:
    """
    Order snapshot sent when requesting a payment link.

    Example:
        request = PaymentLinkRequest.from_order(order)
    """

    email: str
    name: str
    amount: Decimal
    description: str
    currency: str = "CAD"

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.email:
            raise ValueError("email is required")

    @classmethod
    def from_order(cls, order: Order) -> PaymentLinkRequest:
        return cls(
            email=order.email,
            name=order.billing_name,
            amount=order.total,
            description=f"Order #{order.number}",
            currency=order.currency,
        )

    def to_body(self, account_uuid: str) -> dict[str, Any]:
        return {
            "account_uuid": account_uuid,
            "email": self.email,
            "name": self.name,
            "amount": float(self.amount),
            "currency": self.currency,
            "description": self.description,
        }


@dataclass(frozen=True)
class PaymentLinkResult:
    """
    Payment link issued by the processor.

    Attributes:
        url: Where the customer completes the transfer
        transaction: The transaction created for this attempt
    """

    url: str
    transaction: RemoteTransaction
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PaymentLinkResult:
        operation = "request_payment_link"
        data = _require_mapping(payload.get("data"), "data", operation)
        url = data.get("url")
        if not url or not isinstance(url, str):
            raise ResponseFormatError(
                "Invalid response from payment gateway",
                operation=operation,
                details={"reason": "missing data.url"},
            )
        transaction = RemoteTransaction.from_payload(data.get("transaction"), operation)
        return cls(url=url, transaction=transaction, raw=payload)


@dataclass(frozen=True)
class TransactionPage:
    """One page of the transactions listing."""

    items: list[RemoteTransaction]
    current_page: int
    total_pages: int

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages

    @classmethod
    def from_payload(cls, payload: dict[str, Any], page_number: int) -> TransactionPage:
        operation = "fetch_transactions_by_reference"
        data = payload.get("data")
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise ResponseFormatError(
                "Invalid response structure from payment gateway",
                operation=operation,
                details={"reason": "missing data.items", "page": page_number},
            )

        items = [RemoteTransaction.from_payload(item, operation) for item in data["items"]]

        pagination = data.get("pagination")
        if pagination is None:
            # No pagination block: treat as the only/last page
            return cls(items=items, current_page=page_number, total_pages=page_number)

        pagination = _require_mapping(pagination, "pagination", operation)
        try:
            current_page = int(pagination["current_page"])
            total_pages = int(pagination["total_pages"])
        except (KeyError, TypeError, ValueError):
            raise ResponseFormatError(
                "Invalid pagination in payment gateway response",
                operation=operation,
                details={"page": page_number},
            )

        return cls(items=items, current_page=current_page, total_pages=total_pages)
