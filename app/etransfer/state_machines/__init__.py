"""
State enums and status constants for e-transfer models.
"""

from etransfer.state_machines.states import (
    GATEWAY_ID,
    TERMINAL_TRANSACTION_STATUSES,
    OrderStatus,
    TransactionStatus,
)

__all__ = [
    "GATEWAY_ID",
    "OrderStatus",
    "TERMINAL_TRANSACTION_STATUSES",
    "TransactionStatus",
]
