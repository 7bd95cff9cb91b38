"""
E-transfer gateway app.

This app keeps local orders consistent with the state of asynchronous
Interac e-transfer payments held by the remote payment processor:
- OAuth client-credentials token caching
- Payment link requests at checkout
- Paginated transaction lookups by reference
- Periodic reconciliation of pending orders
- Customer login/logout against the processor

Usage:
    from etransfer.services import PaymentInitiator, ReconciliationService

    # At checkout
    result = PaymentInitiator.initiate(order)

    # From celery-beat (every minute)
    result = ReconciliationService.run_sweep()
"""
