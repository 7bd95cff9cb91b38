"""
Pytest fixtures shared by all e-transfer tests.

Sections:
    - Redis (distributed locks)
    - Gateway configuration
    - Fake processor and API client
"""

import pytest

from etransfer.adapters import EtransferApiClient, GatewayConfig, TokenCache
from etransfer.services import GatewaySettingsService
from etransfer.tests.fakes import FakeProcessor, InMemoryCredentialStore

ACCOUNT_UUID = "5b0e1c9a-3f55-4c1e-9d1a-2f8a7c6b1e00"
API_ENDPOINT = "https://pay.example.com/api/v1"


# =============================================================================
# Redis Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_redis(mocker):
    """
    Mock Redis connection for distributed locks.

    Locks always acquire and release unless a test changes the
    return values.
    """
    redis = mocker.MagicMock()
    redis.set.return_value = True
    redis.eval.return_value = 1
    mocker.patch("etransfer.locks.get_redis_connection", return_value=redis)
    return redis


# =============================================================================
# Gateway Configuration Fixtures
# =============================================================================


@pytest.fixture
def gateway_config():
    return GatewayConfig(
        account_uuid=ACCOUNT_UUID,
        client_id="client-abc",
        client_secret="s3cret",
        api_endpoint=API_ENDPOINT,
    )


@pytest.fixture
def gateway_options(db, gateway_config):
    """Enabled, fully configured gateway stored in GatewayOption."""
    GatewaySettingsService.update(
        enabled="yes",
        account_uuid=gateway_config.account_uuid,
        client_id=gateway_config.client_id,
        client_secret=gateway_config.client_secret,
        api_endpoint=gateway_config.api_endpoint,
    )
    return GatewaySettingsService.all()


# =============================================================================
# Processor Fixtures
# =============================================================================


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def http_client(processor):
    client = processor.client()
    yield client
    client.close()


@pytest.fixture
def credential_store():
    return InMemoryCredentialStore()


@pytest.fixture
def token_cache(gateway_config, http_client, credential_store):
    return TokenCache(gateway_config, http_client=http_client, store=credential_store)


@pytest.fixture
def api_client(gateway_config, http_client, token_cache):
    """API client wired to the fake processor."""
    return EtransferApiClient(
        gateway_config,
        http_client=http_client,
        token_cache=token_cache,
    )
