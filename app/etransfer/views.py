"""
API views for the e-transfer checkout flow.

Provides:
- GatewayLoginView / GatewayLogoutView: Processor account session
- GatewayInfoView: Checkout page rendering data
- OrderCheckoutView: Issue a payment link and move the order to pending
- OrderPaymentLinkView: Payment link for the order confirmation page

These endpoints serve anonymous storefront customers; the processor
session flag lives in the Django session.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from etransfer.exceptions import GatewayUnavailableError
from etransfer.models import Order
from etransfer.serializers import (
    CheckoutResponseSerializer,
    GatewayInfoSerializer,
    GatewayLoginSerializer,
    OrderPaymentSerializer,
    SessionActionSerializer,
)
from etransfer.services import (
    GatewaySessionService,
    GatewaySettingsService,
    PaymentInitiator,
)

logger = logging.getLogger(__name__)


class StorefrontAPIView(APIView):
    """Anonymous endpoint; state is carried by the Django session."""

    authentication_classes: list = []
    permission_classes = [AllowAny]


class GatewayLoginView(StorefrontAPIView):
    """
    POST /api/v1/etransfer/session/login/
        Sign in to the customer's processor account.
    """

    @extend_schema(
        operation_id="etransfer_login",
        summary="Log in to processor account",
        request=GatewayLoginSerializer,
        responses={
            200: OpenApiResponse(response=SessionActionSerializer, description="Logged in"),
            400: OpenApiResponse(response=SessionActionSerializer, description="Login failed"),
        },
        tags=["E-Transfer"],
    )
    def post(self, request):
        serializer = GatewayLoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        result = GatewaySessionService.login(
            request.session,
            serializer.validated_data["username"],
            serializer.validated_data["password"],
        )
        return Response(
            result.to_dict(),
            status=status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST,
        )


class GatewayLogoutView(StorefrontAPIView):
    """
    POST /api/v1/etransfer/session/logout/
        Forget the processor account login.
    """

    @extend_schema(
        operation_id="etransfer_logout",
        summary="Log out of processor account",
        request=None,
        responses={200: SessionActionSerializer},
        tags=["E-Transfer"],
    )
    def post(self, request):
        result = GatewaySessionService.logout(request.session)
        return Response(result.to_dict())


class GatewayInfoView(StorefrontAPIView):
    """
    GET /api/v1/etransfer/gateway/
        Title, description, availability and account links for checkout.
    """

    @extend_schema(
        operation_id="etransfer_gateway_info",
        summary="Gateway checkout information",
        responses={200: GatewayInfoSerializer},
        tags=["E-Transfer"],
    )
    def get(self, request):
        options = GatewaySettingsService.all()

        signup_url = password_reset_url = None
        try:
            config = GatewaySettingsService.get_config()
        except GatewayUnavailableError:
            pass
        else:
            signup_url = config.signup_url
            password_reset_url = config.password_reset_url

        serializer = GatewayInfoSerializer(
            {
                "title": options["title"],
                "description": options["description"],
                "available": GatewaySettingsService.is_available(),
                "require_login": options["require_login"] == "yes",
                "is_logged_in": GatewaySessionService.is_logged_in(request.session),
                "signup_url": signup_url,
                "password_reset_url": password_reset_url,
            }
        )
        return Response(serializer.data)


class OrderCheckoutView(StorefrontAPIView):
    """
    POST /api/v1/etransfer/orders/{order_id}/checkout/
        Request a payment link and move the order to pending.

    Response:
        200 OK: {"result": "success", "redirect": ..., "payment_url": ...}
        400 Bad Request: {"result": "failure", "messages": [...]}
        404 Not Found: Order doesn't exist
    """

    @extend_schema(
        operation_id="etransfer_checkout",
        summary="Pay an order by e-transfer",
        request=None,
        responses={
            200: OpenApiResponse(response=CheckoutResponseSerializer, description="Payment link issued"),
            400: OpenApiResponse(response=CheckoutResponseSerializer, description="Checkout failed"),
            404: OpenApiResponse(description="Order not found"),
        },
        tags=["E-Transfer"],
    )
    def post(self, request, order_id):
        try:
            order = Order.objects.get(pk=order_id)
        except Order.DoesNotExist:
            return Response({"error": "Order not found"}, status=status.HTTP_404_NOT_FOUND)

        validation = GatewaySessionService.validate_checkout(request.session)
        if not validation.success:
            return Response(
                {"result": "failure", "messages": [validation.error]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = PaymentInitiator.initiate(order)
        if not result.success:
            return Response(
                {"result": "failure", "messages": [result.error]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "result": "success",
                "redirect": result.data.redirect_url,
                "payment_url": result.data.payment_url,
            }
        )


class OrderPaymentLinkView(StorefrontAPIView):
    """
    GET /api/v1/etransfer/orders/{order_id}/payment-link/
        Payment link and last known transaction status for an order.
    """

    @extend_schema(
        operation_id="etransfer_payment_link",
        summary="Order payment link",
        responses={
            200: OrderPaymentSerializer,
            404: OpenApiResponse(description="Order not found or not paid by e-transfer"),
        },
        tags=["E-Transfer"],
    )
    def get(self, request, order_id):
        try:
            order = Order.objects.get(pk=order_id)
        except Order.DoesNotExist:
            return Response({"error": "Order not found"}, status=status.HTTP_404_NOT_FOUND)

        if PaymentInitiator.payment_url_for(order) is None:
            return Response(
                {"error": "No e-transfer payment link for this order"},
                status=status.HTTP_404_NOT_FOUND,
            )

        return Response(OrderPaymentSerializer(order).data)
