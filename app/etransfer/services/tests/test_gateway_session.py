"""
Tests for GatewaySessionService.
"""

import httpx
import pytest

from etransfer.services import GatewaySessionService, GatewaySettingsService
from etransfer.services.gateway_session import (
    LOGIN_FAILED_MESSAGE,
    LOGIN_REQUIRED_MESSAGE,
    LOGOUT_MESSAGE,
    SESSION_FLAG,
)
from etransfer.tests.fakes import LOGIN_PATH, VALID_PASSWORD


class TestLogin:
    def test_success_sets_flag(self, api_client):
        session = {}

        result = GatewaySessionService.login(
            session, "ada@example.com", VALID_PASSWORD, client=api_client
        )

        assert result.success is True
        assert session[SESSION_FLAG] is True
        assert GatewaySessionService.is_logged_in(session) is True

    def test_rejected_uses_remote_message(self, api_client):
        session = {}

        result = GatewaySessionService.login(session, "ada@example.com", "wrong", client=api_client)

        assert result.success is False
        assert result.message == "Invalid credentials"
        assert SESSION_FLAG not in session

    def test_rejected_without_message(self, api_client, processor):
        processor.override(
            "POST", LOGIN_PATH, lambda request: httpx.Response(200, json={"success": False})
        )

        result = GatewaySessionService.login({}, "ada@example.com", "wrong", client=api_client)

        assert result.message == LOGIN_FAILED_MESSAGE

    def test_transport_error_is_failed_login(self, api_client, processor):
        processor.override("POST", LOGIN_PATH, lambda request: httpx.Response(500))
        session = {}

        result = GatewaySessionService.login(
            session, "ada@example.com", VALID_PASSWORD, client=api_client
        )

        assert result.to_dict() == {"success": False, "message": LOGIN_FAILED_MESSAGE}
        assert SESSION_FLAG not in session

    @pytest.mark.django_db
    def test_not_configured(self):
        result = GatewaySessionService.login({}, "ada@example.com", VALID_PASSWORD)

        assert result.success is False
        assert result.message == LOGIN_FAILED_MESSAGE


class TestLogout:
    def test_clears_flag(self):
        session = {SESSION_FLAG: True}

        result = GatewaySessionService.logout(session)

        assert result.message == LOGOUT_MESSAGE
        assert GatewaySessionService.is_logged_in(session) is False

    def test_logout_when_not_logged_in(self):
        assert GatewaySessionService.logout({}).success is True


@pytest.mark.django_db
class TestValidateCheckout:
    def test_login_not_required(self):
        assert GatewaySessionService.validate_checkout({}).success is True

    def test_login_required_and_missing(self):
        GatewaySettingsService.update(require_login="yes")

        result = GatewaySessionService.validate_checkout({})

        assert result.success is False
        assert result.error == LOGIN_REQUIRED_MESSAGE
        assert result.error_code == "LOGIN_REQUIRED"

    def test_login_required_and_present(self):
        GatewaySettingsService.update(require_login="yes")

        assert GatewaySessionService.validate_checkout({SESSION_FLAG: True}).success is True
