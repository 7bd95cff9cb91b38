"""
E-transfer domain models.

- Order: Customer order awaiting or resolved by e-transfer payment
- OrderNote: Audit notes appended by the gateway
- GatewayOption: Named string options (settings store)
- StoredCredential: Durable slot for the OAuth bearer token
"""

from etransfer.models.gateway import GatewayOption, StoredCredential
from etransfer.models.order import (
    META_PAYMENT_URL,
    META_TRANSACTION_DATE,
    META_TRANSACTION_REFERENCE,
    META_TRANSACTION_STATUS,
    Order,
    OrderNote,
    TrackedOrder,
)

__all__ = [
    "GatewayOption",
    "META_PAYMENT_URL",
    "META_TRANSACTION_DATE",
    "META_TRANSACTION_REFERENCE",
    "META_TRANSACTION_STATUS",
    "Order",
    "OrderNote",
    "StoredCredential",
    "TrackedOrder",
]
