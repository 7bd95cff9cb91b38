"""
Payment initiator: turns a checkout into a pending e-transfer order.

Flow:
    1. Refuse if the gateway is disabled or not configured, or the order
       cannot move to PENDING
    2. Ask the processor for a payment link (PaymentLinkRequest.from_order)
    3. In one transaction, record the link and reference in the order
       metadata, move the order to PENDING and add an audit note
    4. After commit, send payment_link_issued

Any processor error in step 2 leaves the order untouched; the customer
sees the processor's message and may retry.

Usage:
    from etransfer.services import PaymentInitiator

    result = PaymentInitiator.initiate(order)
    if result.success:
        return redirect(result.data.redirect_url)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import transaction
from django_fsm import TransitionNotAllowed, can_proceed

from core.services import BaseService, ServiceResult

from etransfer.adapters import PaymentLinkRequest
from etransfer.exceptions import (
    EtransferError,
    GatewayUnavailableError,
    InvalidStateTransitionError,
)
from etransfer.models import (
    META_PAYMENT_URL,
    META_TRANSACTION_DATE,
    META_TRANSACTION_REFERENCE,
    META_TRANSACTION_STATUS,
    Order,
)
from etransfer.services.gateway_settings import GatewaySettingsService
from etransfer.signals import payment_link_issued
from etransfer.state_machines import GATEWAY_ID

if TYPE_CHECKING:
    from etransfer.adapters import EtransferApiClient, PaymentLinkResult

AWAITING_PAYMENT_NOTE = "Awaiting e-transfer payment"


@dataclass(frozen=True)
class CheckoutResult:
    """
    Outcome of a successful checkout.

    Attributes:
        order: The order, now PENDING
        payment_url: Where the customer completes the transfer
        transaction_reference: Processor reference tracked by the sweep
        redirect_url: Where the storefront should send the customer
    """

    order: Order
    payment_url: str
    transaction_reference: str
    redirect_url: str


class PaymentInitiator(BaseService):
    """Issues payment links and records them on orders."""

    @classmethod
    def initiate(
        cls,
        order: Order,
        client: EtransferApiClient | None = None,
    ) -> ServiceResult[CheckoutResult]:
        """
        Request a payment link for an order and move it to PENDING.

        Args:
            order: Order being checked out (DRAFT or FAILED)
            client: API client (built from gateway settings if omitted)

        Returns:
            ServiceResult containing CheckoutResult, or a failure carrying
            the processor's message
        """
        log_context = {"order_id": str(order.id), "order_number": order.number}

        if not GatewaySettingsService.is_available():
            cls.get_logger().warning("E-transfer gateway unavailable", extra=log_context)
            return ServiceResult.failure(
                "E-transfer payments are currently unavailable",
                error_code="GATEWAY_UNAVAILABLE",
            )

        if not can_proceed(order.await_payment):
            cls.get_logger().warning(
                "Order cannot await payment",
                extra={**log_context, "current_status": order.status},
            )
            return ServiceResult.from_exception(cls._transition_error(order))

        try:
            request = PaymentLinkRequest.from_order(order)
        except ValueError as e:
            return ServiceResult.failure(str(e), error_code="INVALID_ORDER")

        owns_client = client is None
        try:
            client = client or GatewaySettingsService.build_client()
        except GatewayUnavailableError as e:
            cls.get_logger().warning(
                "E-transfer gateway unavailable",
                extra={**log_context, "missing": e.details.get("missing")},
            )
            return ServiceResult.failure(
                "E-transfer payments are currently unavailable",
                error_code=e.error_code,
            )

        try:
            link = client.request_payment_link(request)
        except EtransferError as e:
            cls.get_logger().warning(
                "Payment link request failed",
                extra={**log_context, "error_code": e.error_code},
            )
            return ServiceResult.from_exception(e)
        finally:
            if owns_client:
                client.close()

        try:
            order = cls._record_link(order, link)
        except InvalidStateTransitionError as e:
            cls.get_logger().warning(
                "Order cannot await payment",
                extra={**log_context, "current_status": e.details.get("current_status")},
            )
            return ServiceResult.from_exception(e)

        cls.get_logger().info(
            "Order awaiting e-transfer payment",
            extra={**log_context, "transaction_reference": link.transaction.reference},
        )

        return ServiceResult.success(
            CheckoutResult(
                order=order,
                payment_url=link.url,
                transaction_reference=link.transaction.reference,
                redirect_url=link.url,
            )
        )

    @classmethod
    def _record_link(cls, order: Order, link: PaymentLinkResult) -> Order:
        """Persist the link on the order and transition it to PENDING."""
        with transaction.atomic():
            locked = Order.objects.select_for_update().get(id=order.id)

            try:
                locked.await_payment()
            except TransitionNotAllowed as e:
                raise cls._transition_error(locked) from e

            locked.metadata = {
                **locked.metadata,
                META_PAYMENT_URL: link.url,
                META_TRANSACTION_REFERENCE: link.transaction.reference,
                META_TRANSACTION_STATUS: link.transaction.status,
                META_TRANSACTION_DATE: link.transaction.created_at,
            }
            locked.transaction_id = link.transaction.reference
            locked.payment_method = GATEWAY_ID
            locked.save()
            locked.add_note(AWAITING_PAYMENT_NOTE)

            transaction.on_commit(
                lambda: payment_link_issued.send(
                    sender=cls,
                    order=locked,
                    payment_url=link.url,
                    transaction_reference=link.transaction.reference,
                )
            )

        return locked

    @staticmethod
    def _transition_error(order: Order) -> InvalidStateTransitionError:
        return InvalidStateTransitionError(
            f"Order #{order.number} cannot await payment from {order.status}",
            details={"order_id": str(order.id), "current_status": order.status},
        )

    @classmethod
    def payment_url_for(cls, order: Order) -> str | None:
        """Payment link shown on the order confirmation page."""
        if order.payment_method != GATEWAY_ID:
            return None
        return order.metadata.get(META_PAYMENT_URL)
