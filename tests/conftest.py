from types import SimpleNamespace

import pytest

from clientdesk import create_app
from clientdesk.config import TestingConfig
from clientdesk.services.accounts import create_admin, create_client

ADMIN_PASSWORD = "admin-pass"
CLIENT_PASSWORD = "client-pass"


@pytest.fixture
def app():
    return create_app(TestingConfig)


@pytest.fixture
def seed(app):
    """One admin and two clients of the same portal."""
    with app.app_context():
        admin = create_admin(name="Ada Admin", email="ada@example.com", password=ADMIN_PASSWORD)
        alice = create_client(
            name="Alice",
            email="alice@example.com",
            password=CLIENT_PASSWORD,
            company="Acme",
            created_by=admin.id,
        )
        bob = create_client(name="Bob", email="bob@example.com", password=CLIENT_PASSWORD, created_by=admin.id)
        return SimpleNamespace(admin_id=admin.id, alice_id=alice.id, bob_id=bob.id)


def login(client, email, password):
    return client.post("/api/admin/unified-login", json={"email": email, "password": password})


def _signed_in(app, email, password):
    client = app.test_client()
    response = login(client, email, password)
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def admin_client(app, seed):
    return _signed_in(app, "ada@example.com", ADMIN_PASSWORD)


@pytest.fixture
def alice_client(app, seed):
    return _signed_in(app, "alice@example.com", CLIENT_PASSWORD)


@pytest.fixture
def bob_client(app, seed):
    return _signed_in(app, "bob@example.com", CLIENT_PASSWORD)


@pytest.fixture
def open_ticket(alice_client):
    def _open(**overrides):
        payload = {"subject": "Site is down", "description": "Homepage returns 502", "priority": "high"}
        payload.update(overrides)
        response = alice_client.post("/api/tickets", json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    return _open
