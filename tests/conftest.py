"""
Shared test configuration and fixtures for the ondertekenen test suite.
"""

import pytest
import pytest_asyncio

from ondertekenen.client import InMemorySigningClient, SignhostClient
from ondertekenen.core.config import clear_settings_cache
from ondertekenen.schemas import FileMetaData, Receiver, Signer, Transaction

SETTINGS_ENV_VARS = [
    "APP_NAME",
    "ENVIRONMENT",
    "LOG_LEVEL",
    "LOG_JSON",
    "SIGNHOST_BASE_URL",
    "SIGNHOST_APP_KEY",
    "SIGNHOST_API_KEY",
    "SIGNHOST_SHARED_SECRET",
    "SIGNHOST_TIMEOUT_SECONDS",
    "SIGNHOST_CONNECT_TIMEOUT_SECONDS",
]


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep the host environment out of Settings and reset the cache."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def signhost_config():
    return {
        "app_key": "test_app_key",
        "api_key": "test_api_key",
        "base_url": "https://api.signhost.com/api",
        "shared_secret": "test_shared_secret",
    }


@pytest.fixture
def offline_client(signhost_config):
    """Client for checks that never open an HTTP session."""
    return SignhostClient(**signhost_config)


@pytest_asyncio.fixture
async def signhost_client(signhost_config):
    client = SignhostClient(**signhost_config)
    yield client
    await client.close()


@pytest.fixture
def memory_client():
    return InMemorySigningClient()


@pytest.fixture
def pdf_bytes():
    return b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"


@pytest.fixture
def sample_transaction():
    """A new transaction, not yet created."""
    return Transaction(
        reference="contract-2024-001",
        postback_url="https://app.example.com/signhost/postback",
        days_to_expire=30,
        send_email_notifications=True,
        signers=[
            Signer(
                email="john@example.com",
                send_sign_request=True,
                sign_request_message="Please sign the contract",
                language="en-US",
            )
        ],
        receivers=[
            Receiver(name="Jane Smith", email="jane@example.com", language="en-US"),
        ],
    )


@pytest.fixture
def sample_metadata():
    return FileMetaData(
        display_order=1,
        display_name="contract.pdf",
        description="Service agreement",
        signers={"signer1": {"FormSets": ["SignatureSet"]}},
        form_sets={
            "SignatureSet": {
                "Signature1": {"Type": "Signature", "Location": {"Search": "{{Signer1}}"}},
            }
        },
    )
