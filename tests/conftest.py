import pytest

from totp_backend import create_app
from totp_core.models import Credential
from totp_core.store import CredentialStore
from totp_database import MemoryStorage

RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"  # ASCII "12345678901234567890"
EXAMPLE_SECRET = "JBSWY3DPEHPK3PXP"


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    store = CredentialStore(storage)
    store.load()
    return store


@pytest.fixture
def sample_credentials():
    return [
        Credential.create(name="alice@example.com", secret=EXAMPLE_SECRET, issuer="Example"),
        Credential.create(name="bob", secret=RFC_SECRET, issuer="GitHub", digits=8),
        Credential.create(name="carol", secret="MZXW6YTBOI", issuer=None),
    ]


@pytest.fixture
def app(store):
    app = create_app(store=store)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
