"""
OAuth bearer token cache for the e-transfer processor.

The processor issues short-lived bearer tokens through a client-credentials
exchange. TokenCache keeps one token valid across many independent requests:

- A valid token is returned without any network call or lock
- An expired, absent or stale token is refreshed exactly once even when
  several threads or worker processes notice it at the same time
- Every refreshed token is persisted so a restart does not force a new
  exchange

Refresh is single-flight at two levels: a threading.Lock inside the process
and a Redis DistributedLock across processes. After taking both locks the
cache re-reads the durable slot, so the loser of a race reuses the winner's
token.

Usage:
    cache = TokenCache(config, http_client=httpx.Client(timeout=30))
    credential = cache.get_valid_token()
    headers = {"Authorization": f"Bearer {credential.access_token}"}

    # When OAuth settings change
    cache.invalidate()
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Protocol

import httpx
from django.conf import settings
from django.utils import timezone

from etransfer.adapters.types import Credential, GatewayConfig
from etransfer.exceptions import AuthError, LockAcquisitionError
from etransfer.locks import DistributedLock

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

TOKEN_PATH = "/oauth/token"
DEFAULT_SLOT = "etransfer_oauth_token"
REFRESH_LOCK_KEY = "etransfer:token-refresh"


# =============================================================================
# Credential Storage
# =============================================================================


class CredentialStore(Protocol):
    """Durable slot holding at most one credential."""

    def load(self) -> Credential | None: ...

    def save(self, credential: Credential) -> None: ...

    def clear(self) -> None: ...


class DatabaseCredentialStore:
    """CredentialStore backed by the StoredCredential table."""

    def __init__(self, slot: str = DEFAULT_SLOT) -> None:
        self.slot = slot

    def load(self) -> Credential | None:
        from etransfer.models import StoredCredential

        row = StoredCredential.objects.filter(slot=self.slot).first()
        if row is None:
            return None
        return Credential(
            access_token=row.access_token,
            expires_at=row.expires_at,
            config_fingerprint=row.config_fingerprint,
        )

    def save(self, credential: Credential) -> None:
        from etransfer.models import StoredCredential

        StoredCredential.objects.update_or_create(
            slot=self.slot,
            defaults={
                "access_token": credential.access_token,
                "expires_at": credential.expires_at,
                "config_fingerprint": credential.config_fingerprint,
            },
        )

    def clear(self) -> None:
        from etransfer.models import StoredCredential

        StoredCredential.objects.filter(slot=self.slot).delete()


# =============================================================================
# Token Cache
# =============================================================================


class TokenCache:
    """
    Single cached bearer credential with single-flight refresh.

    Args:
        config: Gateway connection settings
        http_client: httpx client used for the token exchange
        store: Durable credential slot (default: database)
        timeout: Exchange timeout in seconds
        lock_timeout: How long to wait for another worker's refresh
    """

    def __init__(
        self,
        config: GatewayConfig,
        http_client: httpx.Client,
        store: CredentialStore | None = None,
        timeout: float | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        self.config = config
        self.store = store or DatabaseCredentialStore()
        self._http = http_client
        self._timeout = timeout or settings.ETRANSFER_API_TIMEOUT_SECONDS
        self._lock_timeout = lock_timeout or settings.ETRANSFER_TOKEN_LOCK_TIMEOUT
        self._credential: Credential | None = None
        self._refresh_lock = threading.Lock()

    def _is_usable(self, credential: Credential | None) -> bool:
        return credential is not None and credential.is_valid(
            timezone.now(), self.config.fingerprint
        )

    def get_valid_token(self) -> Credential:
        """
        Return a valid credential, refreshing it if necessary.

        Returns:
            A credential whose expires_at is in the future

        Raises:
            AuthError: If the exchange fails; the cache is left unchanged
        """
        credential = self._credential
        if self._is_usable(credential):
            return credential

        with self._refresh_lock:
            # Another thread may have refreshed while we waited
            if self._is_usable(self._credential):
                return self._credential

            stored = self.store.load()
            if self._is_usable(stored):
                self._credential = stored
                return stored

            try:
                with DistributedLock(
                    REFRESH_LOCK_KEY,
                    ttl=int(self._timeout) + 30,
                    timeout=self._lock_timeout,
                ):
                    # Another worker process may have won the race
                    stored = self.store.load()
                    if self._is_usable(stored):
                        self._credential = stored
                        return stored

                    credential = self._exchange()
                    self.store.save(credential)
                    self._credential = credential
                    return credential
            except LockAcquisitionError as e:
                raise AuthError(
                    "Timed out waiting for token refresh",
                    operation="token_exchange",
                    details={"reason": e.message},
                ) from e

    def invalidate(self) -> None:
        """Drop the cached credential from memory and durable storage."""
        with self._refresh_lock:
            self._credential = None
            self.store.clear()
        logger.info("E-transfer credential invalidated")

    def _exchange(self) -> Credential:
        """Perform the client-credentials exchange."""
        url = f"{self.config.base_url}{TOKEN_PATH}"
        log_context = {"operation": "token_exchange", "url": url}

        start_time = time.time()
        logger.info("Requesting e-transfer access token", extra=log_context)

        try:
            response = self._http.post(
                url,
                json={
                    "grant_type": "client_credentials",
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "scope": "*",
                },
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Token request failed",
                extra={**log_context, "error_type": type(e).__name__},
            )
            raise AuthError(
                f"Token request failed: {type(e).__name__}",
                operation="token_exchange",
                details={"reason": str(e)},
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if (
            not isinstance(body, dict)
            or not body.get("access_token")
            or body.get("expires_in") is None
        ):
            logger.warning(
                "Invalid response from OAuth server",
                extra={**log_context, "status_code": response.status_code},
            )
            raise AuthError(
                "Invalid response from OAuth server",
                operation="token_exchange",
                details={"status_code": response.status_code},
            )

        try:
            expires_in = int(body["expires_in"])
        except (TypeError, ValueError):
            raise AuthError(
                "Invalid expires_in from OAuth server",
                operation="token_exchange",
            )

        credential = Credential(
            access_token=str(body["access_token"]),
            expires_at=timezone.now() + timedelta(seconds=expires_in),
            config_fingerprint=self.config.fingerprint,
        )

        logger.info(
            "E-transfer access token issued",
            extra={
                **log_context,
                "expires_in": expires_in,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return credential


__all__ = [
    "CredentialStore",
    "DatabaseCredentialStore",
    "TokenCache",
]
