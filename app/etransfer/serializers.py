"""
DRF serializers for the e-transfer app.

This module provides serializers for:
- Processor account login requests
- Gateway display information for the checkout page
- Checkout and payment link responses
"""

from __future__ import annotations

from rest_framework import serializers

from etransfer.models import Order


class GatewayLoginSerializer(serializers.Serializer):
    """Customer credentials for the processor account."""

    username = serializers.EmailField(help_text="Processor account email")
    password = serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        style={"input_type": "password"},
    )


class SessionActionSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField(allow_blank=True)


class GatewayInfoSerializer(serializers.Serializer):
    """What the checkout page needs to render the payment option."""

    title = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    available = serializers.BooleanField()
    require_login = serializers.BooleanField()
    is_logged_in = serializers.BooleanField()
    signup_url = serializers.CharField(allow_null=True)
    password_reset_url = serializers.CharField(allow_null=True)


class CheckoutResponseSerializer(serializers.Serializer):
    result = serializers.ChoiceField(choices=["success", "failure"])
    redirect = serializers.URLField(required=False)
    payment_url = serializers.URLField(required=False)
    messages = serializers.ListField(child=serializers.CharField(), required=False)


class OrderPaymentSerializer(serializers.ModelSerializer):
    """Order summary with its e-transfer payment link."""

    payment_url = serializers.SerializerMethodField()
    transaction_status = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "status",
            "total",
            "currency",
            "transaction_id",
            "payment_url",
            "transaction_status",
        ]
        read_only_fields = fields

    def get_payment_url(self, obj: Order) -> str | None:
        return obj.tracked.payment_url

    def get_transaction_status(self, obj: Order) -> str | None:
        return obj.tracked.last_known_transaction_status
