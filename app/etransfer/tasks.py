"""
Celery tasks for the e-transfer app.

Tasks are defined in etransfer.workers and re-exported here so Celery
autodiscover finds them.
"""

from etransfer.workers import (  # noqa: F401
    reconcile_single_order,
    run_scheduled_reconciliation,
)
