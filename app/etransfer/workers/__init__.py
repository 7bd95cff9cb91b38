"""
Celery tasks for background e-transfer processing.

Usage:
    from etransfer.workers import run_scheduled_reconciliation, reconcile_single_order

    run_scheduled_reconciliation.delay()
    reconcile_single_order.delay(str(order.id))
"""

from etransfer.workers.reconciliation_worker import (
    reconcile_single_order,
    run_scheduled_reconciliation,
)

__all__ = [
    "reconcile_single_order",
    "run_scheduled_reconciliation",
]
