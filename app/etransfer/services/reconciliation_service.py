"""
Reconciliation service for pending e-transfer orders.

The processor is the source of truth for payment status, and it does not
call back. ReconciliationService polls it: each sweep looks up every order
still awaiting an e-transfer, fetches the matching transactions in one
paginated call and applies whatever changed.

Status Mapping:
    Approved            -> order PAID, note "Payment approved via e-Transfer."
    Failed / Cancelled  -> order FAILED, note "Payment failed or cancelled."
    anything else       -> status recorded in metadata, order stays PENDING

Safety:
    - A non-blocking sweep lease means overlapping triggers skip instead of
      queueing (ReconciliationLockError)
    - A failed fetch aborts the sweep before any order is touched
    - Each order is updated in its own transaction under select_for_update,
      after re-checking it is still pending
    - A status equal to the last recorded one is skipped, so replaying the
      same processor response is a no-op
    - One order failing to apply never stops the rest of the sweep

Usage:
    from etransfer.services import ReconciliationService

    result = ReconciliationService.run_sweep()
    if result.success:
        print(f"Paid: {result.data.paid}, failed: {result.data.failed}")

    # Single order, on demand
    result = ReconciliationService.reconcile_order(order.id)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from core.services import BaseService, ServiceResult

from etransfer.exceptions import (
    EtransferError,
    GatewayUnavailableError,
    InvalidStateTransitionError,
    LockAcquisitionError,
    ReconciliationLockError,
)
from etransfer.locks import DistributedLock
from etransfer.models import META_TRANSACTION_STATUS, Order
from etransfer.services.gateway_settings import GatewaySettingsService
from etransfer.signals import order_reconciled
from etransfer.state_machines import GATEWAY_ID, OrderStatus, TransactionStatus

if TYPE_CHECKING:
    from typing import Any

    from etransfer.adapters import EtransferApiClient, RemoteTransaction


# =============================================================================
# Constants
# =============================================================================

SWEEP_LOCK_KEY = "etransfer:reconciliation:sweep"

APPROVED_NOTE = "Payment approved via e-Transfer."
FAILED_NOTE = "Payment failed or cancelled."

FAILURE_STATUSES = frozenset({TransactionStatus.FAILED, TransactionStatus.CANCELLED})


# =============================================================================
# Data Types
# =============================================================================


class SweepStatus(str, Enum):
    """How a sweep ended."""

    COMPLETED = "completed"
    FETCH_FAILED = "fetch_failed"
    NOT_CONFIGURED = "not_configured"


class ApplyOutcome(str, Enum):
    """What applying one remote transaction did to its order."""

    PAID = "paid"
    FAILED = "failed"
    STATUS_UPDATED = "status_updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"  # order no longer pending or reference replaced


@dataclass
class SweepResult:
    """Summary of one reconciliation sweep."""

    run_id: uuid.UUID
    status: SweepStatus = SweepStatus.COMPLETED
    orders_checked: int = 0
    references_queried: int = 0
    transactions_fetched: int = 0
    updated: int = 0
    paid: int = 0
    failed: int = 0
    unchanged: int = 0
    errors: int = 0
    started_at: datetime = field(default_factory=timezone.now)
    completed_at: datetime | None = None

    def record(self, outcome: ApplyOutcome) -> None:
        if outcome in (ApplyOutcome.UNCHANGED, ApplyOutcome.SKIPPED):
            self.unchanged += 1
            return
        self.updated += 1
        if outcome == ApplyOutcome.PAID:
            self.paid += 1
        elif outcome == ApplyOutcome.FAILED:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["run_id"] = str(self.run_id)
        data["status"] = self.status.value
        data["started_at"] = self.started_at.isoformat()
        data["completed_at"] = self.completed_at.isoformat() if self.completed_at else None
        return data


# =============================================================================
# Reconciliation Service
# =============================================================================


class ReconciliationService(BaseService):
    """
    Polls the processor and applies transaction status changes to orders.

    Usage:
        result = ReconciliationService.run_sweep()
        result = ReconciliationService.reconcile_order(order_id)
    """

    # =========================================================================
    # Public API
    # =========================================================================

    @classmethod
    def run_sweep(
        cls,
        client: EtransferApiClient | None = None,
    ) -> ServiceResult[SweepResult]:
        """
        Run one reconciliation sweep over every pending e-transfer order.

        Args:
            client: API client (built from gateway settings if omitted)

        Returns:
            ServiceResult containing SweepResult. A failed fetch is reported
            through SweepResult.status, not as a service failure.

        Raises:
            ReconciliationLockError: If another sweep is already running
        """
        lock = DistributedLock(
            SWEEP_LOCK_KEY,
            ttl=settings.ETRANSFER_SWEEP_LOCK_TTL,
            blocking=False,
        )
        try:
            lock.acquire()
        except LockAcquisitionError:
            cls.get_logger().info(
                "Another reconciliation sweep is in progress",
                extra={"lock_key": SWEEP_LOCK_KEY},
            )
            raise ReconciliationLockError(
                "Another reconciliation sweep is in progress",
                details={"lock_key": SWEEP_LOCK_KEY},
            )

        try:
            return cls._run_sweep_with_lock(lock, client)
        finally:
            lock.release()

    @classmethod
    def reconcile_order(
        cls,
        order_id: uuid.UUID | str,
        client: EtransferApiClient | None = None,
    ) -> ServiceResult[ApplyOutcome | None]:
        """
        Reconcile a single order against the processor.

        Returns:
            ServiceResult containing the ApplyOutcome, or None when the
            order is not awaiting an e-transfer or the processor has no
            matching transaction
        """
        order = Order.objects.filter(id=order_id).first()
        if order is None:
            return ServiceResult.failure("Order not found", error_code="NOT_FOUND")

        tracked = order.tracked
        if (
            order.status != OrderStatus.PENDING
            or order.payment_method != GATEWAY_ID
            or not tracked.transaction_reference
        ):
            return ServiceResult.success(None)

        log_context = {"order_id": str(order.id), "reference": tracked.transaction_reference}
        cls.get_logger().info("Reconciling single order", extra=log_context)

        try:
            transactions = cls._fetch(client, [tracked.transaction_reference])
        except (EtransferError, GatewayUnavailableError) as e:
            return cls.handle_exception(e, "Transaction lookup failed", log_level=logging.WARNING)

        outcome: ApplyOutcome | None = None
        for remote in transactions:
            if remote.reference == tracked.transaction_reference:
                outcome = cls._apply_transaction(order.id, remote)

        return ServiceResult.success(outcome)

    # =========================================================================
    # Sweep
    # =========================================================================

    @classmethod
    def _run_sweep_with_lock(
        cls,
        lock: DistributedLock,
        client: EtransferApiClient | None,
    ) -> ServiceResult[SweepResult]:
        """Execute one sweep with the lease already held."""
        result = SweepResult(run_id=uuid.uuid4())
        log_context = {"run_id": str(result.run_id)}

        orders = Order.objects.awaiting_payment()
        orders_by_reference: dict[str, list[uuid.UUID]] = {}
        for order in orders:
            result.orders_checked += 1
            reference = order.tracked.transaction_reference
            if reference:
                orders_by_reference.setdefault(reference, []).append(order.id)

        result.references_queried = len(orders_by_reference)

        if not orders_by_reference:
            cls.get_logger().debug(
                "No pending e-transfer orders to reconcile",
                extra={**log_context, "orders_checked": result.orders_checked},
            )
            return cls._finish(result)

        cls.get_logger().info(
            "Starting reconciliation sweep",
            extra={
                **log_context,
                "orders_checked": result.orders_checked,
                "references": result.references_queried,
            },
        )

        try:
            transactions = cls._fetch(client, list(orders_by_reference))
        except GatewayUnavailableError as e:
            cls.get_logger().warning(
                "Gateway not configured, sweep skipped",
                extra={**log_context, "missing": e.details.get("missing")},
            )
            result.status = SweepStatus.NOT_CONFIGURED
            return cls._finish(result)
        except EtransferError as e:
            cls.get_logger().warning(
                "Transaction fetch failed, no orders updated",
                extra={
                    **log_context,
                    "error_code": e.error_code,
                    "error": e.message,
                },
            )
            result.status = SweepStatus.FETCH_FAILED
            return cls._finish(result)

        result.transactions_fetched = len(transactions)

        # Fetch may have taken a while; keep the lease for the write phase
        if not lock.extend():
            cls.get_logger().warning(
                "Sweep lease could not be extended, another sweep may overlap the writes",
                extra={**log_context, "lock_key": lock.key},
            )

        for remote in transactions:
            for order_id in orders_by_reference.get(remote.reference, ()):
                try:
                    outcome = cls._apply_transaction(order_id, remote)
                except Exception:
                    result.errors += 1
                    cls.get_logger().exception(
                        "Error applying transaction status",
                        extra={
                            **log_context,
                            "order_id": str(order_id),
                            "reference": remote.reference,
                            "transaction_status": remote.status,
                        },
                    )
                    continue
                result.record(outcome)

        return cls._finish(result)

    @classmethod
    def _finish(cls, result: SweepResult) -> ServiceResult[SweepResult]:
        result.completed_at = timezone.now()
        cls.get_logger().info(
            "Reconciliation sweep finished",
            extra={
                "run_id": str(result.run_id),
                "status": result.status.value,
                "updated": result.updated,
                "paid": result.paid,
                "failed": result.failed,
                "unchanged": result.unchanged,
                "errors": result.errors,
            },
        )
        return ServiceResult.success(result)

    @classmethod
    def _fetch(
        cls,
        client: EtransferApiClient | None,
        references: list[str],
    ) -> list[RemoteTransaction]:
        if client is not None:
            return client.fetch_transactions_by_reference(references)

        with GatewaySettingsService.build_client() as owned:
            return owned.fetch_transactions_by_reference(references)

    # =========================================================================
    # Apply
    # =========================================================================

    @classmethod
    def _apply_transaction(
        cls,
        order_id: uuid.UUID,
        remote: RemoteTransaction,
    ) -> ApplyOutcome:
        """
        Apply one remote transaction to its order.

        Runs in its own transaction with the order row locked, so a
        concurrent checkout retry or manual edit is seen before writing.
        """
        with transaction.atomic():
            order = Order.objects.select_for_update().get(id=order_id)
            tracked = order.tracked

            # Re-verify after acquiring the row lock
            if (
                order.status != OrderStatus.PENDING
                or order.payment_method != GATEWAY_ID
                or tracked.transaction_reference != remote.reference
            ):
                cls.get_logger().info(
                    "Order no longer awaiting this transaction, skipping",
                    extra={"order_id": str(order.id), "current_status": order.status},
                )
                return ApplyOutcome.SKIPPED

            if tracked.last_known_transaction_status == remote.status:
                return ApplyOutcome.UNCHANGED

            order.metadata = {**order.metadata, META_TRANSACTION_STATUS: remote.status}
            note: str | None = None

            try:
                if remote.status == TransactionStatus.APPROVED:
                    order.payment_complete()
                    outcome, note = ApplyOutcome.PAID, APPROVED_NOTE
                elif remote.status in FAILURE_STATUSES:
                    order.fail()
                    outcome, note = ApplyOutcome.FAILED, FAILED_NOTE
                else:
                    outcome = ApplyOutcome.STATUS_UPDATED
            except TransitionNotAllowed as e:
                raise InvalidStateTransitionError(
                    f"State transition not allowed: {e}",
                    details={"order_id": str(order.id), "current_status": order.status},
                ) from e

            order.save()
            if note:
                order.add_note(note)

            transaction.on_commit(
                lambda: order_reconciled.send(
                    sender=cls,
                    order=order,
                    transaction_status=remote.status,
                )
            )

        cls.get_logger().info(
            "Applied transaction status",
            extra={
                "order_id": str(order.id),
                "reference": remote.reference,
                "transaction_status": remote.status,
                "outcome": outcome.value,
            },
        )
        return outcome
