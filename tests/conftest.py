import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(TESTS_DIR))

from fakes import FakeHttpClient  # noqa: E402

from zimbra_client.api.zimbra_api import ZimbraAPIService  # noqa: E402
from zimbra_client.utils.credential_store import InMemoryCredentialStore  # noqa: E402

BASE_URL = "https://mail.example.com"
USER = "alice"


@pytest.fixture
def store() -> InMemoryCredentialStore:
    store = InMemoryCredentialStore({"admin_instance_url": BASE_URL})
    for key, value in {
        "user_name": "alice@example.com",
        "token": "old-token",
        "login": "alice@example.com",
        "password": "secret",
    }.items():
        store.set_user_value(USER, key, value)
    return store


@pytest.fixture
def http() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def service(http, store) -> ZimbraAPIService:
    return ZimbraAPIService(http, store, agent_name="zimbra-client", agent_version="1.2.3")
