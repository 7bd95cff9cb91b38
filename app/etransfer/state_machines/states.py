"""
State enums for e-transfer models.

Order States (local, managed by django-fsm):
    draft → pending → paid
    draft → pending → failed → pending (new checkout attempt)
    draft/pending → cancelled

Transaction Statuses (remote, owned by the processor):
    Pending → Approved | Failed | Cancelled
    The processor may report other intermediate values; those are stored
    on the order but never drive a local transition.
"""

from django.db import models

# Payment method identifier stored on orders paid through this gateway
GATEWAY_ID = "etransfer"


class OrderStatus(models.TextChoices):
    """
    States for the Order model lifecycle.

    Terminal states: PAID, CANCELLED
    FAILED can move back to PENDING when the customer retries checkout.

    State Flow:
        DRAFT → PENDING → PAID

    Failure Flow:
        PENDING → FAILED → PENDING (retry)

    Cancellation Flow:
        DRAFT/PENDING → CANCELLED
    """

    DRAFT = "draft", "Draft"
    PENDING = "pending", "Awaiting Payment"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class TransactionStatus:
    """
    Well-known transaction statuses reported by the processor.

    Not a TextChoices: the processor may return values outside this set
    and they must be stored verbatim.
    """

    PENDING = "Pending"
    APPROVED = "Approved"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


TERMINAL_TRANSACTION_STATUSES = frozenset(
    {
        TransactionStatus.APPROVED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    }
)
