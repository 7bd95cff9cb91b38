"""
Order and OrderNote models.

Order is the local record the customer checks out with. The e-transfer
gateway only ever touches it in two places: PaymentInitiator records the
payment link and moves it to PENDING, and ReconciliationService moves it
to PAID or FAILED once the processor reports a terminal status.

Usage:
    from etransfer.models import Order

    order = Order.objects.create(
        number="1042",
        email="jane@example.com",
        first_name="Jane",
        last_name="Doe",
        total=Decimal("25.00"),
    )

    order.await_payment()  # draft -> pending
    order.save()

    order.tracked.transaction_reference  # metadata projection
"""

from __future__ import annotations

from dataclasses import dataclass

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from etransfer.state_machines import GATEWAY_ID, OrderStatus

# Metadata keys written by the gateway
META_PAYMENT_URL = "_payment_url"
META_TRANSACTION_REFERENCE = "_transaction_reference"
META_TRANSACTION_STATUS = "_transaction_status"
META_TRANSACTION_DATE = "_transaction_date"


@dataclass(frozen=True)
class TrackedOrder:
    """
    Reconciliation view of an order.

    Built from the order's status and metadata; the sweep only needs
    these fields to decide whether an order changed.
    """

    order_id: str
    status: str
    payment_url: str | None
    transaction_reference: str | None
    last_known_transaction_status: str | None


class OrderQuerySet(models.QuerySet):
    """QuerySet helpers for gateway lookups."""

    def awaiting_payment(self, payment_method: str = GATEWAY_ID) -> OrderQuerySet:
        """Orders still waiting for the customer's e-transfer."""
        return self.filter(status=OrderStatus.PENDING, payment_method=payment_method)


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    Customer order paid out-of-band by Interac e-transfer.

    Fields:
        number: Human-facing order number (used in the payment description)
        email/first_name/last_name: Billing contact sent to the processor
        total/currency: Amount requested
        payment_method: Gateway identifier ("etransfer")
        status: FSM-managed order status
        metadata: Gateway metadata (_payment_url, _transaction_reference, ...)
        transaction_id: Processor reference once a link was issued
        paid_at/failed_at/cancelled_at: Transition timestamps
    """

    number = models.CharField(
        max_length=32,
        unique=True,
        help_text="Human-facing order number",
    )

    # ==========================================================================
    # Billing Contact
    # ==========================================================================

    email = models.EmailField(help_text="Billing email address")
    first_name = models.CharField(max_length=150, blank=True, default="")
    last_name = models.CharField(max_length=150, blank=True, default="")

    # ==========================================================================
    # Amount & Payment
    # ==========================================================================

    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Order total in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="CAD",
        help_text="ISO 4217 currency code",
    )

    payment_method = models.CharField(
        max_length=50,
        default=GATEWAY_ID,
        db_index=True,
        help_text="Payment gateway identifier",
    )

    status = FSMField(
        default=OrderStatus.DRAFT,
        choices=OrderStatus.choices,
        db_index=True,
        protected=True,  # Prevent direct assignment outside transitions
        help_text="Current order status (managed by FSM)",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Gateway metadata (payment URL, transaction reference/status/date)",
    )

    transaction_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Processor transaction reference",
    )

    # ==========================================================================
    # State Timestamps
    # ==========================================================================

    paid_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(
                fields=["status", "payment_method"],
                name="order_status_method_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total__gte=0),
                name="order_total_not_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Order #{self.number} ({self.status}, {self.total} {self.currency})"

    # ==========================================================================
    # Gateway Projection
    # ==========================================================================

    @property
    def billing_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def tracked(self) -> TrackedOrder:
        """Reconciliation projection of this order."""
        return TrackedOrder(
            order_id=str(self.id),
            status=self.status,
            payment_url=self.metadata.get(META_PAYMENT_URL),
            transaction_reference=self.metadata.get(META_TRANSACTION_REFERENCE),
            last_known_transaction_status=self.metadata.get(META_TRANSACTION_STATUS),
        )

    def add_note(self, note: str) -> OrderNote:
        """Append an audit note to the order."""
        return OrderNote.objects.create(order=self, note=note)

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[OrderStatus.DRAFT, OrderStatus.FAILED],
        target=OrderStatus.PENDING,
    )
    def await_payment(self):
        """
        Payment link issued; waiting for the customer's transfer.

        Transition: DRAFT/FAILED -> PENDING
        """
        self.failed_at = None

    @transition(
        field=status,
        source=OrderStatus.PENDING,
        target=OrderStatus.PAID,
    )
    def payment_complete(self):
        """
        Processor approved the transfer.

        Transition: PENDING -> PAID

        Only reachable from PENDING, so a repeated approval cannot mark
        the order paid twice.
        """
        self.paid_at = timezone.now()

    @transition(
        field=status,
        source=OrderStatus.PENDING,
        target=OrderStatus.FAILED,
    )
    def fail(self):
        """
        Processor reported the transfer failed or was cancelled.

        Transition: PENDING -> FAILED
        """
        self.failed_at = timezone.now()

    @transition(
        field=status,
        source=[OrderStatus.DRAFT, OrderStatus.PENDING],
        target=OrderStatus.CANCELLED,
    )
    def cancel(self):
        """
        Order cancelled locally (customer or staff action).

        Transition: DRAFT/PENDING -> CANCELLED
        """
        self.cancelled_at = timezone.now()


class OrderNote(BaseModel):
    """Audit note attached to an order by the gateway."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="notes",
    )
    note = models.TextField()

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Order Note"
        verbose_name_plural = "Order Notes"

    def __str__(self) -> str:
        return f"OrderNote({self.order_id}: {self.note[:40]})"
