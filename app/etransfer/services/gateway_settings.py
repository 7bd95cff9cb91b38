"""
Gateway settings service.

Reads and writes the named GatewayOption rows that configure the gateway
(account, OAuth client, API endpoint and checkout labels). Writes go
through update() so a change of client id, client secret or endpoint also
drops the stored bearer credential.

Usage:
    from etransfer.services import GatewaySettingsService

    GatewaySettingsService.update(
        enabled="yes",
        account_uuid="acc-123",
        client_id="client",
        client_secret="secret",
        api_endpoint="https://pay.example.com/api/v1",
    )

    if GatewaySettingsService.is_available():
        config = GatewaySettingsService.get_config()
"""

from __future__ import annotations

from core.services import BaseService

from etransfer.adapters import DatabaseCredentialStore, EtransferApiClient, GatewayConfig
from etransfer.exceptions import GatewayUnavailableError
from etransfer.models import GatewayOption

# Option defaults for a fresh install
DEFAULTS: dict[str, str] = {
    "enabled": "no",
    "require_login": "no",
    "title": "eTransfer",
    "description": "Pay with eTransfer",
    "account_uuid": "",
    "client_id": "",
    "client_secret": "",
    "api_endpoint": "",
}

# Settings that must be non-empty for the gateway to be offered
REQUIRED_SETTINGS: dict[str, str] = {
    "account_uuid": "Account UUID",
    "client_id": "Client ID",
    "client_secret": "Client Secret",
    "api_endpoint": "API Endpoint",
}

# Changing any of these makes the stored credential stale
CREDENTIAL_KEYS = frozenset({"client_id", "client_secret", "api_endpoint"})


class GatewaySettingsService(BaseService):
    """Named string options for the e-transfer gateway."""

    @classmethod
    def get(cls, key: str, default: str | None = None) -> str:
        option = GatewayOption.objects.filter(key=key).first()
        if option is not None:
            return option.value
        if default is not None:
            return default
        return DEFAULTS.get(key, "")

    @classmethod
    def set(cls, key: str, value: str) -> None:
        cls.update(**{key: value})

    @classmethod
    def all(cls) -> dict[str, str]:
        options = dict(DEFAULTS)
        options.update(GatewayOption.objects.values_list("key", "value"))
        return options

    @classmethod
    def update(cls, **options: str) -> list[str]:
        """
        Write options and invalidate the credential if OAuth settings changed.

        Returns:
            Keys whose value actually changed
        """
        current = cls.all()
        changed = [
            key
            for key, value in options.items()
            if current.get(key, "") != (value or "")
        ]

        with cls.atomic():
            for key in changed:
                GatewayOption.objects.update_or_create(
                    key=key, defaults={"value": options[key] or ""}
                )

            if CREDENTIAL_KEYS.intersection(changed):
                DatabaseCredentialStore().clear()

        if changed:
            cls.get_logger().info(
                "Gateway settings updated",
                extra={
                    "changed": changed,
                    "credential_invalidated": bool(CREDENTIAL_KEYS.intersection(changed)),
                },
            )
        return changed

    # =========================================================================
    # Availability
    # =========================================================================

    @classmethod
    def missing_settings(cls) -> list[str]:
        """Labels of required settings that are still empty."""
        options = cls.all()
        return [
            label
            for key, label in REQUIRED_SETTINGS.items()
            if not options.get(key, "").strip()
        ]

    @classmethod
    def is_enabled(cls) -> bool:
        return cls.get("enabled") == "yes"

    @classmethod
    def requires_login(cls) -> bool:
        return cls.get("require_login") == "yes"

    @classmethod
    def is_available(cls) -> bool:
        """Enabled and every required setting present."""
        return cls.is_enabled() and not cls.missing_settings()

    @classmethod
    def get_config(cls) -> GatewayConfig:
        """
        Build connection settings from the stored options.

        Raises:
            GatewayUnavailableError: If a required setting is empty
        """
        missing = cls.missing_settings()
        if missing:
            raise GatewayUnavailableError(
                "E-transfer gateway is not configured",
                details={"missing": missing},
            )

        options = cls.all()
        return GatewayConfig(
            account_uuid=options["account_uuid"].strip(),
            client_id=options["client_id"].strip(),
            client_secret=options["client_secret"].strip(),
            api_endpoint=options["api_endpoint"].strip(),
        )

    @classmethod
    def build_client(cls) -> EtransferApiClient:
        """API client for the current configuration."""
        return EtransferApiClient(cls.get_config())
