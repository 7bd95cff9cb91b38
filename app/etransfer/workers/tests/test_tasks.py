"""
Tests for reconciliation Celery tasks.

Tests cover:
- run_scheduled_reconciliation task
- reconcile_single_order task
"""

from unittest.mock import patch
from uuid import uuid4

import httpx
import pytest

from core.services import ServiceResult
from etransfer.exceptions import ReconciliationLockError
from etransfer.models import Order
from etransfer.services import GatewaySettingsService
from etransfer.state_machines import OrderStatus
from etransfer.tasks import reconcile_single_order, run_scheduled_reconciliation
from etransfer.tests.factories import OrderFactory, make_pending_order


@pytest.fixture
def fake_gateway(gateway_options, api_client, mocker):
    mocker.patch.object(GatewaySettingsService, "build_client", return_value=api_client)
    return api_client


# =============================================================================
# run_scheduled_reconciliation Tests
# =============================================================================


class TestRunScheduledReconciliation:
    """Tests for the periodic sweep task."""

    def test_sweep_applies_statuses(self, db, fake_gateway, processor):
        order = make_pending_order("ET-0001")
        processor.set_status("ET-0001", "Approved")

        result = run_scheduled_reconciliation()

        assert result["status"] == "completed"
        assert result["paid"] == 1
        assert Order.objects.get(id=order.id).status == OrderStatus.PAID

    def test_skipped_when_sweep_running(self, db):
        """A second trigger while a sweep holds the lock is skipped."""
        with patch(
            "etransfer.services.ReconciliationService.run_sweep",
            side_effect=ReconciliationLockError("Another reconciliation sweep is in progress"),
        ):
            result = run_scheduled_reconciliation()

        assert result["status"] == "skipped"

    def test_fetch_failure_reported(self, db, fake_gateway, processor):
        make_pending_order("ET-0001")
        processor.override("GET", "/api/v1/transactions", lambda request: httpx.Response(500))

        result = run_scheduled_reconciliation()

        assert result["status"] == "fetch_failed"
        assert result["updated"] == 0

    def test_not_configured(self, db):
        make_pending_order("ET-0001")

        result = run_scheduled_reconciliation()

        assert result["status"] == "not_configured"

    def test_service_failure(self, db):
        with patch(
            "etransfer.services.ReconciliationService.run_sweep",
            return_value=ServiceResult.failure("Broken", error_code="BROKEN"),
        ):
            result = run_scheduled_reconciliation()

        assert result == {"status": "failed", "error": "Broken", "error_code": "BROKEN"}

    def test_unexpected_error(self, db):
        with patch(
            "etransfer.services.ReconciliationService.run_sweep",
            side_effect=RuntimeError("boom"),
        ):
            result = run_scheduled_reconciliation()

        assert result["status"] == "failed"
        assert result["error_code"] == "UNEXPECTED_ERROR"


# =============================================================================
# reconcile_single_order Tests
# =============================================================================


class TestReconcileSingleOrder:
    """Tests for the on-demand task."""

    def test_updated(self, db, fake_gateway, processor):
        order = make_pending_order("ET-0001")
        processor.set_status("ET-0001", "Failed")

        result = reconcile_single_order(str(order.id))

        assert result == {"status": "updated", "order_id": str(order.id), "outcome": "failed"}
        assert Order.objects.get(id=order.id).status == OrderStatus.FAILED

    def test_unchanged(self, db, fake_gateway, processor):
        order = make_pending_order("ET-0001")
        processor.set_status("ET-0001", "Pending")

        result = reconcile_single_order(str(order.id))

        assert result["status"] == "unchanged"
        assert result["outcome"] == "unchanged"

    def test_nothing_to_do(self, db, fake_gateway):
        order = OrderFactory()

        result = reconcile_single_order(str(order.id))

        assert result == {"status": "ok", "order_id": str(order.id)}

    def test_not_found(self, db, fake_gateway):
        result = reconcile_single_order(str(uuid4()))

        assert result["status"] == "not_found"

    def test_invalid_uuid(self, db):
        result = reconcile_single_order("not-a-uuid")

        assert result["status"] == "failed"
        assert result["error"] == "Invalid UUID format"

