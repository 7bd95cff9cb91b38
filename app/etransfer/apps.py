"""
E-transfer app configuration.
"""

from django.apps import AppConfig


class EtransferConfig(AppConfig):
    """Configuration for the e-transfer gateway application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "etransfer"
    verbose_name = "E-Transfer Gateway"
