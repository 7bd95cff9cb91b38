"""
Tests for GatewaySettingsService.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from etransfer.adapters import EtransferApiClient
from etransfer.exceptions import GatewayUnavailableError
from etransfer.models import GatewayOption, StoredCredential
from etransfer.services import GatewaySettingsService


@pytest.fixture
def stored_credential(db):
    return StoredCredential.objects.create(
        slot="etransfer_oauth_token",
        access_token="abc",
        expires_at=timezone.now() + timedelta(hours=1),
        config_fingerprint="f" * 64,
    )


@pytest.mark.django_db
class TestOptions:
    def test_defaults(self):
        options = GatewaySettingsService.all()

        assert options["enabled"] == "no"
        assert options["title"] == "eTransfer"
        assert options["description"] == "Pay with eTransfer"
        assert options["api_endpoint"] == ""

    def test_get_and_set(self):
        GatewaySettingsService.set("title", "Interac e-Transfer")

        assert GatewaySettingsService.get("title") == "Interac e-Transfer"
        assert GatewayOption.objects.get(key="title").value == "Interac e-Transfer"

    def test_get_explicit_default(self):
        assert GatewaySettingsService.get("unknown", "fallback") == "fallback"

    def test_update_returns_changed_keys(self):
        assert GatewaySettingsService.update(title="A", enabled="no") == ["title"]
        assert GatewaySettingsService.update(title="A") == []


@pytest.mark.django_db
class TestCredentialInvalidation:
    """Changing OAuth settings drops the stored token."""

    @pytest.mark.parametrize("key", ["client_id", "client_secret", "api_endpoint"])
    def test_credential_key_change_clears_token(self, stored_credential, key):
        GatewaySettingsService.update(**{key: "changed"})

        assert StoredCredential.objects.exists() is False

    def test_other_change_keeps_token(self, stored_credential):
        GatewaySettingsService.update(title="New title", account_uuid="acc-2")

        assert StoredCredential.objects.exists() is True

    def test_unchanged_value_keeps_token(self, gateway_options, stored_credential):
        GatewaySettingsService.update(client_secret=gateway_options["client_secret"])

        assert StoredCredential.objects.exists() is True


@pytest.mark.django_db
class TestAvailability:
    def test_missing_settings_labels(self):
        GatewaySettingsService.update(client_id="id", api_endpoint="https://pay.example.com")

        assert GatewaySettingsService.missing_settings() == ["Account UUID", "Client Secret"]

    def test_whitespace_counts_as_missing(self, gateway_options):
        GatewaySettingsService.update(client_secret="   ")

        assert GatewaySettingsService.missing_settings() == ["Client Secret"]
        assert GatewaySettingsService.is_available() is False

    def test_available_when_enabled_and_configured(self, gateway_options):
        assert GatewaySettingsService.is_available() is True

    def test_disabled(self, gateway_options):
        GatewaySettingsService.update(enabled="no")

        assert GatewaySettingsService.is_available() is False

    def test_requires_login(self):
        assert GatewaySettingsService.requires_login() is False

        GatewaySettingsService.update(require_login="yes")

        assert GatewaySettingsService.requires_login() is True


@pytest.mark.django_db
class TestGetConfig:
    def test_builds_config(self, gateway_options, gateway_config):
        assert GatewaySettingsService.get_config() == gateway_config

    def test_values_stripped(self, gateway_options):
        GatewaySettingsService.update(api_endpoint=" https://pay.example.com/api/v1/ ")

        assert GatewaySettingsService.get_config().api_endpoint == "https://pay.example.com/api/v1"

    def test_missing_raises(self):
        with pytest.raises(GatewayUnavailableError) as exc_info:
            GatewaySettingsService.get_config()

        assert exc_info.value.error_code == "GATEWAY_UNAVAILABLE"
        assert "API Endpoint" in exc_info.value.details["missing"]

    def test_build_client(self, gateway_options, gateway_config):
        with GatewaySettingsService.build_client() as client:
            assert isinstance(client, EtransferApiClient)
            assert client.config == gateway_config
