"""
Gateway configuration and credential storage.

GatewayOption is the settings store: named string options edited from the
admin (account UUID, OAuth client, API endpoint, checkout labels).

StoredCredential is the durable slot for the OAuth bearer token so a
process restart does not force re-authentication.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel


class GatewayOption(BaseModel):
    """
    Named string option for the e-transfer gateway.

    Use GatewaySettingsService to read and write options; writing through
    the service invalidates the stored credential when OAuth settings change.
    """

    key = models.CharField(max_length=64, unique=True)
    value = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["key"]
        verbose_name = "Gateway Option"
        verbose_name_plural = "Gateway Options"

    def __str__(self) -> str:
        return self.key


class StoredCredential(BaseModel):
    """
    Persisted OAuth bearer credential.

    Fields:
        slot: Storage slot name (one credential per slot)
        access_token: Opaque bearer token
        expires_at: Absolute expiry time
        config_fingerprint: Digest of the client id, secret and endpoint
            that produced the token; a mismatch means the token is stale
    """

    slot = models.CharField(max_length=64, unique=True)
    access_token = models.TextField()
    expires_at = models.DateTimeField()
    config_fingerprint = models.CharField(max_length=64)

    class Meta:
        verbose_name = "Stored Credential"
        verbose_name_plural = "Stored Credentials"

    def __str__(self) -> str:
        return f"StoredCredential({self.slot}, expires {self.expires_at:%Y-%m-%d %H:%M})"

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= timezone.now()
