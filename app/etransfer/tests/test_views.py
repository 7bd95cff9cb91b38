"""
Tests for e-transfer API views.

The processor is the FakeProcessor from conftest; views build their API
client through GatewaySettingsService.build_client, which is patched to
return it.
"""

import uuid

import httpx
import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from etransfer.models import Order
from etransfer.services import GatewaySettingsService
from etransfer.services.gateway_session import LOGIN_REQUIRED_MESSAGE
from etransfer.state_machines import OrderStatus
from etransfer.tests.factories import OrderFactory, make_pending_order
from etransfer.tests.fakes import PAYMENT_LINK_PATH, VALID_PASSWORD


@pytest.fixture
def storefront():
    """Anonymous storefront client (session cookie only)."""
    return APIClient()


@pytest.fixture
def fake_gateway(gateway_options, api_client, mocker):
    """Configured gateway whose API client talks to FakeProcessor."""
    mocker.patch.object(GatewaySettingsService, "build_client", return_value=api_client)
    return api_client


def login(storefront, password=VALID_PASSWORD):
    return storefront.post(
        reverse("etransfer:session_login"),
        {"username": "ada@example.com", "password": password},
        format="json",
    )


@pytest.mark.django_db
class TestGatewayInfoView:
    def test_unconfigured(self, storefront):
        response = storefront.get(reverse("etransfer:gateway_info"))

        assert response.status_code == 200
        assert response.data["available"] is False
        assert response.data["title"] == "eTransfer"
        assert response.data["signup_url"] is None

    def test_configured(self, storefront, gateway_options):
        response = storefront.get(reverse("etransfer:gateway_info"))

        assert response.data["available"] is True
        assert response.data["require_login"] is False
        assert response.data["is_logged_in"] is False
        assert response.data["signup_url"] == "https://pay.example.com/customer/register"
        assert response.data["password_reset_url"] == (
            "https://pay.example.com/customer/password-reset/request"
        )


@pytest.mark.django_db
class TestSessionViews:
    def test_login_success_persists_in_session(self, storefront, fake_gateway):
        response = login(storefront)

        assert response.status_code == 200
        assert response.data["success"] is True

        info = storefront.get(reverse("etransfer:gateway_info"))
        assert info.data["is_logged_in"] is True

    def test_login_failure(self, storefront, fake_gateway):
        response = login(storefront, password="wrong")

        assert response.status_code == 400
        assert response.data == {"success": False, "message": "Invalid credentials"}

    def test_login_validation(self, storefront):
        response = storefront.post(
            reverse("etransfer:session_login"),
            {"username": "not-an-email"},
            format="json",
        )

        assert response.status_code == 400
        assert "username" in response.data
        assert "password" in response.data

    def test_logout(self, storefront, fake_gateway):
        login(storefront)

        response = storefront.post(reverse("etransfer:session_logout"))

        assert response.status_code == 200
        assert response.data["message"] == "Logged out successfully"
        info = storefront.get(reverse("etransfer:gateway_info"))
        assert info.data["is_logged_in"] is False


@pytest.mark.django_db
class TestOrderCheckoutView:
    def url(self, order_id):
        return reverse("etransfer:order_checkout", kwargs={"order_id": order_id})

    def test_checkout_success(self, storefront, fake_gateway):
        order = OrderFactory()

        response = storefront.post(self.url(order.id))

        assert response.status_code == 200
        assert response.data == {
            "result": "success",
            "redirect": "https://pay.example.com/pay/ET-0001",
            "payment_url": "https://pay.example.com/pay/ET-0001",
        }
        assert Order.objects.get(id=order.id).status == OrderStatus.PENDING

    def test_order_not_found(self, storefront, fake_gateway):
        response = storefront.post(self.url(uuid.uuid4()))

        assert response.status_code == 404

    def test_login_required(self, storefront, fake_gateway, processor):
        GatewaySettingsService.update(require_login="yes")
        order = OrderFactory()

        response = storefront.post(self.url(order.id))

        assert response.status_code == 400
        assert response.data == {"result": "failure", "messages": [LOGIN_REQUIRED_MESSAGE]}
        assert processor.count("POST", PAYMENT_LINK_PATH) == 0

    def test_login_required_after_login(self, storefront, fake_gateway):
        GatewaySettingsService.update(require_login="yes")
        order = OrderFactory()
        login(storefront)

        response = storefront.post(self.url(order.id))

        assert response.status_code == 200

    def test_processor_rejection_shown(self, storefront, fake_gateway, processor):
        processor.override(
            "POST",
            PAYMENT_LINK_PATH,
            lambda request: httpx.Response(200, json={"success": False, "message": "Limit exceeded"}),
        )
        order = OrderFactory()

        response = storefront.post(self.url(order.id))

        assert response.status_code == 400
        assert response.data == {"result": "failure", "messages": ["Limit exceeded"]}
        assert Order.objects.get(id=order.id).status == OrderStatus.DRAFT

    def test_gateway_unavailable(self, storefront, db):
        order = OrderFactory()

        response = storefront.post(self.url(order.id))

        assert response.status_code == 400
        assert response.data["messages"] == ["E-transfer payments are currently unavailable"]


@pytest.mark.django_db
class TestOrderPaymentLinkView:
    def url(self, order_id):
        return reverse("etransfer:order_payment_link", kwargs={"order_id": order_id})

    def test_pending_order(self, storefront):
        order = make_pending_order("ET-0007")

        response = storefront.get(self.url(order.id))

        assert response.status_code == 200
        assert response.data["payment_url"] == "https://pay.example.com/pay/ET-0007"
        assert response.data["transaction_status"] == "Pending"
        assert response.data["status"] == OrderStatus.PENDING
        assert response.data["transaction_id"] == "ET-0007"

    def test_no_link(self, storefront):
        order = OrderFactory()

        response = storefront.get(self.url(order.id))

        assert response.status_code == 404

    def test_unknown_order(self, storefront):
        response = storefront.get(self.url(uuid.uuid4()))

        assert response.status_code == 404
