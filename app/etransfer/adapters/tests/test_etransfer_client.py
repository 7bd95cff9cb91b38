"""
Tests for EtransferApiClient.

Runs the client against FakeProcessor over httpx.MockTransport, so request
building, authentication and response parsing are exercised end to end.

Tests cover:
- URL derivation (account root vs API endpoint)
- Customer login (unauthenticated)
- Payment link creation and rejection
- Complete pagination of transaction lookups
- 401 replay, 5xx, timeouts and malformed bodies
"""

import json
from decimal import Decimal

import httpx
import pytest

from etransfer.adapters import EtransferApiClient, GatewayConfig, PaymentLinkRequest
from etransfer.exceptions import (
    AuthError,
    RemoteRejection,
    ResponseFormatError,
    TransportError,
)
from etransfer.tests.fakes import (
    LOGIN_PATH,
    PAYMENT_LINK_PATH,
    TOKEN_PATH,
    TRANSACTIONS_PATH,
    VALID_PASSWORD,
)


@pytest.fixture
def link_request():
    return PaymentLinkRequest(
        email="ada@example.com",
        name="Ada Lovelace",
        amount=Decimal("25.00"),
        description="Order #1042",
    )


def seed_transactions(processor, count):
    references = [f"ET-{i:04d}" for i in range(1, count + 1)]
    for reference in references:
        processor.set_status(reference, "Pending")
    return references


# =============================================================================
# URLs
# =============================================================================


class TestUrls:
    def test_account_urls(self, gateway_config, http_client):
        client = EtransferApiClient(gateway_config, http_client=http_client)

        assert client.base_url == "https://pay.example.com"
        assert client.signup_url == "https://pay.example.com/customer/register"
        assert client.password_reset_url == (
            "https://pay.example.com/customer/password-reset/request"
        )

    def test_owned_http_client_closed(self, gateway_config):
        with EtransferApiClient(gateway_config) as client:
            http = client._http

        assert http.is_closed is True

    def test_shared_http_client_left_open(self, gateway_config, http_client):
        with EtransferApiClient(gateway_config, http_client=http_client):
            pass

        assert http_client.is_closed is False


# =============================================================================
# Customer Login
# =============================================================================


class TestAuthenticateUser:
    def test_success(self, api_client, processor):
        result = api_client.authenticate_user("ada@example.com", VALID_PASSWORD)

        assert result.success is True
        request = processor.calls("POST", LOGIN_PATH)[0]
        assert json.loads(request.content) == {
            "email": "ada@example.com",
            "password": VALID_PASSWORD,
        }

    def test_rejected_credentials(self, api_client):
        result = api_client.authenticate_user("ada@example.com", "wrong")

        assert result.success is False
        assert result.message == "Invalid credentials"

    def test_no_bearer_token(self, api_client, processor):
        """Login is a customer credential check, not an API call."""
        api_client.authenticate_user("ada@example.com", VALID_PASSWORD)

        request = processor.calls("POST", LOGIN_PATH)[0]
        assert "authorization" not in request.headers
        assert processor.tokens_issued == 0


# =============================================================================
# Payment Links
# =============================================================================


class TestRequestPaymentLink:
    def test_creates_link(self, api_client, processor, link_request, gateway_config):
        result = api_client.request_payment_link(link_request)

        assert result.url == "https://pay.example.com/pay/ET-0001"
        assert result.transaction.reference == "ET-0001"
        assert result.transaction.status == "Pending"

        request = processor.calls("POST", PAYMENT_LINK_PATH)[0]
        assert request.headers["authorization"] == "Bearer token-1"
        assert request.headers["content-type"] == "application/json"
        body = json.loads(request.content)
        assert body["account_uuid"] == gateway_config.account_uuid
        assert body["amount"] == 25.0

    def test_remote_rejection_keeps_message(self, api_client, processor, link_request):
        processor.override(
            "POST",
            PAYMENT_LINK_PATH,
            lambda request: httpx.Response(
                200, json={"success": False, "message": "Daily limit exceeded"}
            ),
        )

        with pytest.raises(RemoteRejection) as exc_info:
            api_client.request_payment_link(link_request)

        assert exc_info.value.message == "Daily limit exceeded"
        assert exc_info.value.error_code == "REMOTE_REJECTED"

    def test_remote_rejection_default_message(self, api_client, processor, link_request):
        processor.override(
            "POST",
            PAYMENT_LINK_PATH,
            lambda request: httpx.Response(200, json={"success": False}),
        )

        with pytest.raises(RemoteRejection) as exc_info:
            api_client.request_payment_link(link_request)

        assert exc_info.value.message == "Failed to create payment link"

    def test_missing_url(self, api_client, processor, link_request):
        processor.override(
            "POST",
            PAYMENT_LINK_PATH,
            lambda request: httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {"transaction": {"reference": "ET-1", "status": "Pending"}},
                },
            ),
        )

        with pytest.raises(ResponseFormatError):
            api_client.request_payment_link(link_request)


# =============================================================================
# Transactions
# =============================================================================


class TestFetchTransactions:
    def test_single_page(self, api_client, processor):
        processor.set_status("ET-0001", "Approved")
        processor.set_status("ET-0002", "Pending")
        processor.set_status("ET-9999", "Approved")

        transactions = api_client.fetch_transactions_by_reference(["ET-0001", "ET-0002"])

        assert {(t.reference, t.status) for t in transactions} == {
            ("ET-0001", "Approved"),
            ("ET-0002", "Pending"),
        }

    def test_query_parameters(self, api_client, processor, gateway_config):
        processor.set_status("ET-0001", "Pending")

        api_client.fetch_transactions_by_reference(["ET-0002", "ET-0001", "ET-0001", ""], page_size=10)

        params = processor.calls("GET", TRANSACTIONS_PATH)[0].url.params
        assert params["account_uuid"] == gateway_config.account_uuid
        assert params["per_page"] == "10"
        assert params["page"] == "1"
        assert params.get_list("references[]") == ["ET-0001", "ET-0002"]

    def test_follows_every_page(self, api_client, processor):
        """All pages are fetched, none skipped or repeated."""
        references = seed_transactions(processor, 120)

        transactions = api_client.fetch_transactions_by_reference(references, page_size=50)

        assert sorted(t.reference for t in transactions) == references
        pages = [r.url.params["page"] for r in processor.calls("GET", TRANSACTIONS_PATH)]
        assert pages == ["1", "2", "3"]

    def test_failed_page_fails_whole_lookup(self, api_client, processor):
        """A failure on page 2 of 3 never yields a partial list."""
        references = seed_transactions(processor, 120)
        serve = processor._transactions

        def flaky(request):
            if request.url.params["page"] == "2":
                return httpx.Response(502, text="Bad Gateway")
            return serve(request)

        processor.override("GET", TRANSACTIONS_PATH, flaky)

        with pytest.raises(TransportError):
            api_client.fetch_transactions_by_reference(references, page_size=50)

        assert processor.count("GET", TRANSACTIONS_PATH) == 2

    def test_stale_current_page_still_advances(self, api_client, processor):
        """A server stuck on current_page=1 cannot make the lookup repeat pages."""
        processor.override(
            "GET",
            TRANSACTIONS_PATH,
            lambda request: httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "items": [
                            {
                                "reference": f"ET-000{request.url.params['page']}",
                                "status": "Pending",
                            }
                        ],
                        "pagination": {"current_page": 1, "total_pages": 3},
                    },
                },
            ),
        )

        transactions = api_client.fetch_transactions_by_reference(
            ["ET-0001", "ET-0002", "ET-0003"]
        )

        assert [t.reference for t in transactions] == ["ET-0001", "ET-0002", "ET-0003"]
        pages = [r.url.params["page"] for r in processor.calls("GET", TRANSACTIONS_PATH)]
        assert pages == ["1", "2", "3"]

    def test_missing_pagination_stops(self, api_client, processor):
        processor.override(
            "GET",
            TRANSACTIONS_PATH,
            lambda request: httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {"items": [{"reference": "ET-0001", "status": "Approved"}]},
                },
            ),
        )

        transactions = api_client.fetch_transactions_by_reference(["ET-0001"])

        assert len(transactions) == 1
        assert processor.count("GET", TRANSACTIONS_PATH) == 1

    def test_unsuccessful_listing(self, api_client, processor):
        processor.override(
            "GET",
            TRANSACTIONS_PATH,
            lambda request: httpx.Response(200, json={"success": False}),
        )

        with pytest.raises(ResponseFormatError):
            api_client.fetch_transactions_by_reference(["ET-0001"])

    def test_empty_references(self, api_client, processor):
        with pytest.raises(ValueError):
            api_client.fetch_transactions_by_reference(["", ""])

        assert processor.requests == []


# =============================================================================
# Transport & Authentication Errors
# =============================================================================


class TestTransportErrors:
    def test_replays_once_after_401(self, api_client, processor, link_request):
        """A rejected token is dropped, refreshed and the call replayed."""
        serve = processor._payment_link
        calls = {"count": 0}

        def expire_first(request):
            calls["count"] += 1
            if calls["count"] == 1:
                return httpx.Response(401, json={"message": "Unauthenticated."})
            return serve(request)

        processor.override("POST", PAYMENT_LINK_PATH, expire_first)

        result = api_client.request_payment_link(link_request)

        assert result.transaction.reference == "ET-0001"
        assert processor.tokens_issued == 2
        auth_headers = [
            r.headers["authorization"] for r in processor.calls("POST", PAYMENT_LINK_PATH)
        ]
        assert auth_headers == ["Bearer token-1", "Bearer token-2"]

    def test_second_401_is_auth_error(self, api_client, processor, link_request):
        processor.override(
            "POST",
            PAYMENT_LINK_PATH,
            lambda request: httpx.Response(401, json={"message": "Unauthenticated."}),
        )

        with pytest.raises(AuthError):
            api_client.request_payment_link(link_request)

        assert processor.count("POST", PAYMENT_LINK_PATH) == 2

    def test_server_error(self, api_client, processor):
        processor.override(
            "GET", TRANSACTIONS_PATH, lambda request: httpx.Response(503, text="Unavailable")
        )

        with pytest.raises(TransportError) as exc_info:
            api_client.fetch_transactions_by_reference(["ET-0001"])

        assert exc_info.value.is_retryable is True
        assert exc_info.value.details["status_code"] == 503

    def test_timeout(self, api_client, processor, link_request):
        def time_out(request):
            raise httpx.ReadTimeout("timed out", request=request)

        processor.override("POST", PAYMENT_LINK_PATH, time_out)

        with pytest.raises(TransportError) as exc_info:
            api_client.request_payment_link(link_request)

        assert exc_info.value.operation == "request_payment_link"

    def test_invalid_json(self, api_client, processor, link_request):
        processor.override(
            "POST", PAYMENT_LINK_PATH, lambda request: httpx.Response(200, text="<html>")
        )

        with pytest.raises(ResponseFormatError):
            api_client.request_payment_link(link_request)

    def test_auth_failure_blocks_call(self, api_client, processor, link_request):
        """No API call is made without a token."""
        processor.override("POST", TOKEN_PATH, lambda request: httpx.Response(500))

        with pytest.raises(AuthError):
            api_client.request_payment_link(link_request)

        assert processor.count("POST", PAYMENT_LINK_PATH) == 0

    def test_custom_endpoint_path(self, processor, http_client, credential_store):
        """API paths follow the configured endpoint, auth stays at the root."""
        config = GatewayConfig("acc", "id", "secret", "https://pay.example.com/api/v1/")
        client = EtransferApiClient(config, http_client=http_client)
        client.token_cache.store = credential_store
        processor.set_status("ET-0001", "Pending")

        client.fetch_transactions_by_reference(["ET-0001"])

        paths = [r.url.path for r in processor.requests]
        assert paths == [TOKEN_PATH, TRANSACTIONS_PATH]
