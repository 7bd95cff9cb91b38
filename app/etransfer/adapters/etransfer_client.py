"""
HTTP client for the e-transfer processor API.

This module provides EtransferApiClient, which wraps every call made to the
processor. All processor traffic goes through it so error translation,
authentication, timeouts and logging are handled in one place.

Features:
- Bearer authentication through TokenCache (single-flight refresh)
- One replay after a 401, with a fresh token
- Complete pagination for transaction lookups
- Error translation to domain exceptions (AuthError, TransportError,
  ResponseFormatError, RemoteRejection)
- Structured logging with timing metrics

Configuration (via settings):
- ETRANSFER_API_TIMEOUT_SECONDS: Per-request timeout (default: 30)
- ETRANSFER_TRANSACTIONS_PAGE_SIZE: Page size for transaction lookups (default: 50)

Usage:
    from etransfer.adapters import EtransferApiClient, PaymentLinkRequest

    with EtransferApiClient(config) as client:
        link = client.request_payment_link(PaymentLinkRequest.from_order(order))
        transactions = client.fetch_transactions_by_reference([link.transaction.reference])
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import httpx
from django.conf import settings

from etransfer.adapters.token_cache import TokenCache
from etransfer.adapters.types import (
    GatewayConfig,
    LoginResult,
    PaymentLinkRequest,
    PaymentLinkResult,
    RemoteTransaction,
    TransactionPage,
)
from etransfer.exceptions import (
    AuthError,
    RemoteRejection,
    ResponseFormatError,
    TransportError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


# =============================================================================
# Endpoints
# =============================================================================

LOGIN_PATH = "/api/v1/login"
PAYMENT_LINK_PATH = "/payment-types/interac/e-transfers/request-etransfer-link"
TRANSACTIONS_PATH = "/transactions"


class EtransferApiClient:
    """
    Authenticated client for the processor's REST API.

    Args:
        config: Gateway connection settings
        http_client: Shared httpx client (created if omitted)
        token_cache: Credential cache (created over the same httpx client if omitted)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        config: GatewayConfig,
        http_client: httpx.Client | None = None,
        token_cache: TokenCache | None = None,
        timeout: float | None = None,
    ) -> None:
        self.config = config
        self.timeout = timeout or settings.ETRANSFER_API_TIMEOUT_SECONDS
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=self.timeout)
        self.token_cache = token_cache or TokenCache(
            config, http_client=self._http, timeout=self.timeout
        )

    # =========================================================================
    # URLs
    # =========================================================================

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def signup_url(self) -> str:
        return self.config.signup_url

    @property
    def password_reset_url(self) -> str:
        return self.config.password_reset_url

    # =========================================================================
    # Operations
    # =========================================================================

    def authenticate_user(self, email: str, password: str) -> LoginResult:
        """
        Log a customer in to their processor account.

        The caller interprets ``success``; no bearer token is sent.

        Raises:
            TransportError: On network failure or 5xx
            ResponseFormatError: If the body is not a JSON object
        """
        body = self._send(
            "POST",
            f"{self.base_url}{LOGIN_PATH}",
            operation="authenticate_user",
            authenticated=False,
            json={"email": email, "password": password},
        )
        return LoginResult.from_payload(body)

    def request_payment_link(self, request: PaymentLinkRequest) -> PaymentLinkResult:
        """
        Ask the processor to issue a payment link for an order.

        Returns:
            PaymentLinkResult with the customer URL and the new transaction

        Raises:
            RemoteRejection: If the processor answered success=false
            AuthError, TransportError, ResponseFormatError: See module docstring
        """
        operation = "request_payment_link"
        body = self._send(
            "POST",
            f"{self.config.api_endpoint}{PAYMENT_LINK_PATH}",
            operation=operation,
            json=request.to_body(self.config.account_uuid),
        )

        if body.get("success") is not True:
            message = body.get("message") or "Failed to create payment link"
            logger.warning(
                "Payment link request rejected",
                extra={"operation": operation, "remote_message": message},
            )
            raise RemoteRejection(str(message), operation=operation)

        return PaymentLinkResult.from_payload(body)

    def fetch_transactions_by_reference(
        self,
        references: Iterable[str],
        page_size: int | None = None,
    ) -> list[RemoteTransaction]:
        """
        Fetch every transaction matching the given references.

        Pages are followed until the processor reports the last one. If any
        page fails, the whole call fails; a partial list is never returned.

        Args:
            references: Transaction references (deduplicated, order ignored)
            page_size: Items per page (default: ETRANSFER_TRANSACTIONS_PAGE_SIZE)

        Raises:
            ValueError: If no references were given
        """
        refs = sorted({ref for ref in references if ref})
        if not refs:
            raise ValueError("At least one transaction reference is required")

        return self._fetch_all_pages(
            refs, page_size or settings.ETRANSFER_TRANSACTIONS_PAGE_SIZE
        )

    def _fetch_all_pages(
        self, references: list[str], page_size: int
    ) -> list[RemoteTransaction]:
        transactions: list[RemoteTransaction] = []
        page_number = 1

        while True:
            page = self._fetch_page(references, page_number, page_size)
            transactions.extend(page.items)
            # Page numbers advance locally; the reported page only says whether to stop
            if not page.has_more or page_number >= page.total_pages:
                break
            page_number += 1

        logger.info(
            "Fetched e-transfer transactions",
            extra={
                "operation": "fetch_transactions_by_reference",
                "reference_count": len(references),
                "transaction_count": len(transactions),
                "pages": page_number,
            },
        )
        return transactions

    def _fetch_page(
        self, references: list[str], page_number: int, page_size: int
    ) -> TransactionPage:
        operation = "fetch_transactions_by_reference"
        params: list[tuple[str, Any]] = [
            ("account_uuid", self.config.account_uuid),
            ("per_page", page_size),
            ("page", page_number),
        ]
        params += [("references[]", ref) for ref in references]

        body = self._send(
            "GET",
            f"{self.config.api_endpoint}{TRANSACTIONS_PATH}",
            operation=operation,
            params=params,
        )

        if body.get("success") is not True:
            raise ResponseFormatError(
                "Invalid response structure from payment gateway",
                operation=operation,
                details={"page": page_number},
            )

        return TransactionPage.from_payload(body, page_number)

    # =========================================================================
    # Transport
    # =========================================================================

    def _send(
        self,
        method: str,
        url: str,
        operation: str,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Send one request and decode the JSON object it returns.

        Authenticated requests that come back 401 are replayed once after
        the cached credential is dropped.
        """
        headers = {"Accept": "application/json"}
        if "json" in kwargs:
            headers["Content-Type"] = "application/json"

        if authenticated:
            token = self.token_cache.get_valid_token()
            headers["Authorization"] = f"Bearer {token.access_token}"

        response = self._request(method, url, operation, headers=headers, **kwargs)

        if authenticated and response.status_code == 401:
            logger.info(
                "Bearer token rejected, refreshing",
                extra={"operation": operation},
            )
            self.token_cache.invalidate()
            token = self.token_cache.get_valid_token()
            headers["Authorization"] = f"Bearer {token.access_token}"
            response = self._request(method, url, operation, headers=headers, **kwargs)

            if response.status_code == 401:
                raise AuthError(
                    "Payment gateway rejected a freshly issued token",
                    operation=operation,
                    details={"status_code": 401},
                )

        if response.status_code >= 500:
            raise TransportError(
                f"Payment gateway returned HTTP {response.status_code}",
                operation=operation,
                details={"status_code": response.status_code},
            )

        return self._decode(response, operation)

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        **kwargs: Any,
    ) -> httpx.Response:
        log_context = {"operation": operation, "method": method, "url": url}
        start_time = time.time()

        try:
            response = self._http.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(
                "E-transfer request timed out",
                extra={**log_context, "duration_ms": (time.time() - start_time) * 1000},
            )
            raise TransportError(
                f"Payment gateway timed out after {self.timeout}s",
                operation=operation,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(
                "E-transfer request failed",
                extra={**log_context, "error_type": type(e).__name__},
            )
            raise TransportError(
                f"Payment gateway request failed: {type(e).__name__}",
                operation=operation,
                details={"reason": str(e)},
            ) from e

        logger.debug(
            "E-transfer request completed",
            extra={
                **log_context,
                "status_code": response.status_code,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return response

    @staticmethod
    def _decode(response: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise ResponseFormatError(
                "Invalid JSON in payment gateway response",
                operation=operation,
                details={"status_code": response.status_code},
            ) from e

        if not isinstance(body, dict):
            raise ResponseFormatError(
                "Invalid response structure from payment gateway",
                operation=operation,
                details={"status_code": response.status_code},
            )
        return body

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> EtransferApiClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = [
    "EtransferApiClient",
]
