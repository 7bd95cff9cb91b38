"""
URL configuration for the e-transfer app.

Routes:
    - POST session/login/                 - Processor account login
    - POST session/logout/                - Processor account logout
    - GET  gateway/                       - Checkout page information
    - POST orders/<uuid>/checkout/        - Issue payment link
    - GET  orders/<uuid>/payment-link/    - Payment link for confirmation page

All routes are prefixed with /api/v1/etransfer/ when included in the main URLconf.
"""

from django.urls import path

from etransfer.views import (
    GatewayInfoView,
    GatewayLoginView,
    GatewayLogoutView,
    OrderCheckoutView,
    OrderPaymentLinkView,
)

app_name = "etransfer"

urlpatterns = [
    path("session/login/", GatewayLoginView.as_view(), name="session_login"),
    path("session/logout/", GatewayLogoutView.as_view(), name="session_logout"),
    path("gateway/", GatewayInfoView.as_view(), name="gateway_info"),
    path("orders/<uuid:order_id>/checkout/", OrderCheckoutView.as_view(), name="order_checkout"),
    path(
        "orders/<uuid:order_id>/payment-link/",
        OrderPaymentLinkView.as_view(),
        name="order_payment_link",
    ),
]
