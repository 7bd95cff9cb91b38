"""
E-transfer services.

This module provides:
- PaymentInitiator: Issues payment links and moves orders to pending
- ReconciliationService: Polls the processor and applies status changes
- GatewaySettingsService: Gateway options and availability
- GatewaySessionService: Customer login to the processor account

Usage:
    from etransfer.services import PaymentInitiator, ReconciliationService

    result = PaymentInitiator.initiate(order)

    result = ReconciliationService.run_sweep()
"""

from etransfer.services.gateway_session import (
    GatewaySessionService,
    SessionActionResult,
)
from etransfer.services.gateway_settings import GatewaySettingsService
from etransfer.services.payment_initiator import CheckoutResult, PaymentInitiator
from etransfer.services.reconciliation_service import (
    ApplyOutcome,
    ReconciliationService,
    SweepResult,
    SweepStatus,
)

__all__ = [
    "ApplyOutcome",
    "CheckoutResult",
    "GatewaySessionService",
    "GatewaySettingsService",
    "PaymentInitiator",
    "ReconciliationService",
    "SessionActionResult",
    "SweepResult",
    "SweepStatus",
]
