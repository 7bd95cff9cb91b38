"""
Customer session actions for the e-transfer gateway.

When the "require_login" option is on, customers must sign in to their
processor account before checkout. The processor is the authority; this
service only remembers the outcome in the Django session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult

from etransfer.exceptions import EtransferError, GatewayUnavailableError
from etransfer.services.gateway_settings import GatewaySettingsService

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

    from etransfer.adapters import EtransferApiClient

SESSION_FLAG = "gateway_user_logged_in"

LOGIN_FAILED_MESSAGE = "Login failed"
LOGOUT_MESSAGE = "Logged out successfully"
LOGIN_REQUIRED_MESSAGE = "Please login to your payment account first."


@dataclass(frozen=True)
class SessionActionResult:
    success: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message}


class GatewaySessionService(BaseService):
    """Login, logout and checkout gating for processor accounts."""

    @classmethod
    def is_logged_in(cls, session: MutableMapping[str, Any]) -> bool:
        return bool(session.get(SESSION_FLAG))

    @classmethod
    def login(
        cls,
        session: MutableMapping[str, Any],
        email: str,
        password: str,
        client: EtransferApiClient | None = None,
    ) -> SessionActionResult:
        """
        Sign the customer in to their processor account.

        Transport and format errors are reported as a failed login; the
        flag is only set when the processor answers success=true.
        """
        owns_client = client is None
        try:
            client = client or GatewaySettingsService.build_client()
            result = client.authenticate_user(email, password)
        except (EtransferError, GatewayUnavailableError) as e:
            cls.get_logger().warning(
                "Gateway login failed",
                extra={"error_code": e.error_code},
            )
            return SessionActionResult(success=False, message=LOGIN_FAILED_MESSAGE)
        finally:
            if owns_client and client is not None:
                client.close()

        if not result.success:
            return SessionActionResult(
                success=False,
                message=result.message or LOGIN_FAILED_MESSAGE,
            )

        session[SESSION_FLAG] = True
        cls.get_logger().info("Gateway login succeeded")
        return SessionActionResult(success=True, message=result.message or "")

    @classmethod
    def logout(cls, session: MutableMapping[str, Any]) -> SessionActionResult:
        session.pop(SESSION_FLAG, None)
        return SessionActionResult(success=True, message=LOGOUT_MESSAGE)

    @classmethod
    def validate_checkout(cls, session: MutableMapping[str, Any]) -> ServiceResult[None]:
        """Fail when login is required and the customer has not signed in."""
        if GatewaySettingsService.requires_login() and not cls.is_logged_in(session):
            return ServiceResult.failure(LOGIN_REQUIRED_MESSAGE, error_code="LOGIN_REQUIRED")
        return ServiceResult.success(None)
