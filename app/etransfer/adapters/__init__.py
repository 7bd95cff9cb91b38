"""
Adapters for the e-transfer processor API.

All processor traffic goes through EtransferApiClient so authentication,
timeouts, error translation and logging are consistent.

Usage:
    from etransfer.adapters import EtransferApiClient, PaymentLinkRequest

    with EtransferApiClient(config) as client:
        link = client.request_payment_link(PaymentLinkRequest.from_order(order))
"""

from etransfer.adapters.etransfer_client import EtransferApiClient
from etransfer.adapters.token_cache import (
    CredentialStore,
    DatabaseCredentialStore,
    TokenCache,
)
from etransfer.adapters.types import (
    Credential,
    GatewayConfig,
    LoginResult,
    PaymentLinkRequest,
    PaymentLinkResult,
    RemoteTransaction,
    TransactionPage,
)

__all__ = [
    "Credential",
    "CredentialStore",
    "DatabaseCredentialStore",
    "EtransferApiClient",
    "GatewayConfig",
    "LoginResult",
    "PaymentLinkRequest",
    "PaymentLinkResult",
    "RemoteTransaction",
    "TokenCache",
    "TransactionPage",
]
