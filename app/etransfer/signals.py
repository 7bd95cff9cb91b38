"""
Django signals for the e-transfer app.

payment_link_issued is sent after an order has been moved to pending and
its payment link committed. Hosts connect to it for the work the gateway
does not own, such as decrementing stock and emptying the cart.

Usage:
    from django.dispatch import receiver
    from etransfer.signals import payment_link_issued

    @receiver(payment_link_issued)
    def reduce_stock(sender, order, payment_url, transaction_reference, **kwargs):
        ...
"""

from django.dispatch import Signal

# Arguments: order, payment_url, transaction_reference
payment_link_issued = Signal()

# Arguments: order, transaction_status
order_reconciled = Signal()
