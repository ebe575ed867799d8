import pytest
from fastapi.testclient import TestClient

from creditdesk.billing.stripe_client import StripeClientAccessor
from creditdesk.connectors.email_connector import EmailConnector
from creditdesk.persistence.database import Database

from .fakes import VALID_SIGNATURE, WEBHOOK_SECRET, FakeStripeClient


@pytest.fixture()
def db(tmp_path):
    return Database(tmp_path / "creditdesk_test.db")


@pytest.fixture()
def accessor():
    return StripeClientAccessor(key_provider=lambda: "sk_test_abc", factory=FakeStripeClient)


@pytest.fixture()
def fake_stripe(accessor):
    return accessor.get_client()


@pytest.fixture()
def connector(tmp_path):
    return EmailConnector(sandbox_dir=tmp_path / "emails")


@pytest.fixture()
def user(db):
    user_id = db.create_user("user_1", "ada@example.com", name="Ada")
    return db.get_user(user_id)


@pytest.fixture()
def app_client(db, accessor, connector):
    from creditdesk import dependencies
    from creditdesk.billing.webhook import StripeWebhookProcessor
    from creditdesk.main import app

    app.dependency_overrides[dependencies.get_database] = lambda: db
    app.dependency_overrides[dependencies.get_stripe_accessor] = lambda: accessor
    app.dependency_overrides[dependencies.get_connector] = lambda: connector
    app.dependency_overrides[dependencies.get_webhook_processor] = lambda: StripeWebhookProcessor(
        db, accessor, webhook_secret=WEBHOOK_SECRET, max_credits=100000
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
