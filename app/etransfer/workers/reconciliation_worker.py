"""
Reconciliation worker for pending e-transfer orders.

Tasks:
- run_scheduled_reconciliation: Periodic sweep over every pending order
- reconcile_single_order: On-demand reconciliation for one order

Usage:
    # Typically called via celery-beat (interval schedule, every minute)
    from etransfer.workers import run_scheduled_reconciliation

    # Or manually trigger a sweep
    run_scheduled_reconciliation.delay()

    # Reconcile a specific order
    reconcile_single_order.delay(str(order.id))

The beat schedule is created by migration 0002_add_reconciliation_schedule.
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task

from etransfer.exceptions import ReconciliationLockError

logger = logging.getLogger(__name__)


# =============================================================================
# Periodic Task: Reconciliation Sweep
# =============================================================================


@shared_task(bind=True)
def run_scheduled_reconciliation(self) -> dict:
    """
    Run one reconciliation sweep.

    Returns:
        Dict with:
        - status: "completed", "fetch_failed", "not_configured",
          "skipped" (sweep already running) or "failed"
        - run_id and counters from SweepResult when a sweep ran
        - error/error_code if failed

    Note:
        If another sweep is in progress this task returns "skipped"
        immediately rather than waiting, so slow sweeps never queue up.
    """
    from etransfer.services import ReconciliationService

    try:
        result = ReconciliationService.run_sweep()

        if not result.success:
            logger.error(
                f"Reconciliation sweep failed: {result.error}",
                extra={"error": result.error, "error_code": result.error_code},
            )
            return {
                "status": "failed",
                "error": result.error,
                "error_code": result.error_code,
            }

        return result.data.to_dict()

    except ReconciliationLockError:
        # Another sweep is in progress - expected when a sweep runs long
        logger.info(
            "Reconciliation sweep skipped - another sweep in progress",
            extra={"task_id": self.request.id},
        )
        return {
            "status": "skipped",
            "reason": "Another reconciliation sweep is in progress",
        }

    except Exception as e:
        logger.exception(
            f"Unexpected error during reconciliation sweep: {e}",
            extra={"error": str(e)},
        )
        return {
            "status": "failed",
            "error": str(e),
            "error_code": "UNEXPECTED_ERROR",
        }


# =============================================================================
# On-Demand Task: Single Order Reconciliation
# =============================================================================


@shared_task(bind=True)
def reconcile_single_order(self, order_id: str) -> dict:
    """
    Reconcile a single order against the processor.

    Returns:
        Dict with:
        - status: "ok" (nothing to do), "updated", "unchanged",
          "not_found" or "failed"
        - order_id: The ID processed
        - outcome: ApplyOutcome value when a transaction was applied
    """
    from etransfer.services import ApplyOutcome, ReconciliationService

    try:
        order_uuid = UUID(order_id)
    except ValueError:
        logger.error(f"Invalid order_id format: {order_id}")
        return {
            "status": "failed",
            "order_id": order_id,
            "error": "Invalid UUID format",
        }

    try:
        result = ReconciliationService.reconcile_order(order_uuid)

        if not result.success:
            return {
                "status": "not_found" if result.error_code == "NOT_FOUND" else "failed",
                "order_id": order_id,
                "error": result.error,
                "error_code": result.error_code,
            }

        outcome = result.data
        if outcome is None:
            return {"status": "ok", "order_id": order_id}

        unchanged = outcome in (ApplyOutcome.UNCHANGED, ApplyOutcome.SKIPPED)
        return {
            "status": "unchanged" if unchanged else "updated",
            "order_id": order_id,
            "outcome": outcome.value,
        }

    except Exception as e:
        logger.exception(
            f"Error reconciling order: {e}",
            extra={"order_id": order_id},
        )
        return {
            "status": "failed",
            "order_id": order_id,
            "error": str(e),
            "error_code": "UNEXPECTED_ERROR",
        }


__all__ = [
    "reconcile_single_order",
    "run_scheduled_reconciliation",
]
