from datetime import datetime, timedelta, timezone

from clientdesk.models import PrincipalKind
from clientdesk.services.accounts import create_client, set_client_status
from clientdesk.services.authentication import FailureReason, authenticate
from clientdesk.services.session_tokens import token_codec

from .conftest import ADMIN_PASSWORD, CLIENT_PASSWORD, login


def _cookie_header(response):
    return next(value for key, value in response.headers if key == "Set-Cookie" and value.startswith("token="))


def test_admin_login_redirects_to_admin_home(app, seed):
    client = app.test_client()
    response = login(client, "ADA@example.com ", ADMIN_PASSWORD)
    body = response.get_json()
    assert response.status_code == 200
    assert body["redirectTo"] == "/admin"
    assert body["user"]["role"] == "admin"
    assert body["user"]["adminRole"] == "admin"


def test_client_login_redirects_to_portal(app, seed):
    response = login(app.test_client(), "alice@example.com", CLIENT_PASSWORD)
    assert response.status_code == 200
    assert response.get_json()["redirectTo"] == "/portal"
    assert response.get_json()["user"]["role"] == "client"


def test_login_sets_http_only_cookie(app, seed):
    response = login(app.test_client(), "alice@example.com", CLIENT_PASSWORD)
    cookie = _cookie_header(response)
    assert "HttpOnly" in cookie
    assert "SameSite=None" in cookie
    assert "Max-Age=604800" in cookie


def test_inactive_client_gets_generic_error(app, seed):
    with app.app_context():
        set_client_status(seed.alice_id, "inactive")
    response = login(app.test_client(), "alice@example.com", CLIENT_PASSWORD)
    assert response.status_code == 401
    assert response.get_json() == {"message": "Invalid email or password"}


def test_wrong_password_and_unknown_email_are_indistinguishable(app, seed):
    wrong = login(app.test_client(), "alice@example.com", "nope-nope")
    unknown = login(app.test_client(), "nobody@example.com", "nope-nope")
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.get_json() == unknown.get_json()


def test_missing_fields_are_rejected(app, seed):
    response = app.test_client().post("/api/admin/unified-login", json={"email": "alice@example.com"})
    assert response.status_code == 400


def test_admin_wins_when_email_exists_in_both_namespaces(app, seed):
    with app.app_context():
        create_client(name="Ada Client", email="ada@example.com", password=ADMIN_PASSWORD, created_by=seed.admin_id)
    response = login(app.test_client(), "ada@example.com", ADMIN_PASSWORD)
    assert response.get_json()["user"]["role"] == "admin"


def test_same_email_falls_through_to_client_password(app, seed):
    with app.app_context():
        create_client(name="Ada Client", email="ada@example.com", password="client-only-pass", created_by=seed.admin_id)
    response = login(app.test_client(), "ada@example.com", "client-only-pass")
    assert response.status_code == 200
    assert response.get_json()["redirectTo"] == "/portal"


def test_authenticate_reports_reasons(app, seed):
    with app.app_context():
        assert authenticate(PrincipalKind.ADMIN, "ghost@example.com", "x").reason == FailureReason.NOT_FOUND
        assert authenticate(PrincipalKind.CLIENT, "alice@example.com", "bad-pass").reason == FailureReason.INVALID_CREDENTIAL
        set_client_status(seed.bob_id, "inactive")
        result = authenticate(PrincipalKind.CLIENT, "bob@example.com", CLIENT_PASSWORD)
        assert result.reason == FailureReason.ACCOUNT_INACTIVE
        assert result.token is None
        ok = authenticate(PrincipalKind.CLIENT, "alice@example.com", CLIENT_PASSWORD)
        assert ok.success and ok.token


def test_kind_specific_login_endpoints(app, seed):
    client = app.test_client()
    assert client.post("/api/admin/login", json={"email": "alice@example.com", "password": CLIENT_PASSWORD}).status_code == 401
    response = client.post("/api/admin/client-login", json={"email": "alice@example.com", "password": CLIENT_PASSWORD})
    assert response.status_code == 200
    assert "redirectTo" not in response.get_json()


def test_check_cookie_without_token(app):
    response = app.test_client().get("/check-cookie")
    assert response.status_code == 401
    assert response.get_json()["message"] == "Unauthorized: No token provided"


def test_check_cookie_returns_identity(alice_client, seed):
    response = alice_client.get("/check-cookie")
    assert response.status_code == 200
    assert response.get_json() == {"id": seed.alice_id, "email": "alice@example.com", "role": "client", "name": "Alice"}


def test_garbage_cookie_is_rejected(app):
    client = app.test_client()
    client.set_cookie("token", "not-a-token")
    response = client.get("/api/tickets")
    assert response.status_code == 401
    assert response.get_json()["message"] == "Unauthorized: Invalid or expired token"


def test_expired_cookie_is_rejected(app, seed):
    with app.app_context():
        from clientdesk.models import Client
        from clientdesk.extensions import db

        alice = db.session.get(Client, seed.alice_id)
        token = token_codec().issue(alice, now=datetime.now(timezone.utc) - timedelta(days=7, hours=1))
    client = app.test_client()
    client.set_cookie("token", token)
    assert client.get("/check-cookie").status_code == 401


def test_logout_clears_cookie(alice_client):
    response = alice_client.post("/logout")
    assert response.status_code == 200
    assert _cookie_header(response).startswith("token=;")
    assert alice_client.get("/check-cookie").status_code == 401


def test_public_registration_disabled_by_default(app):
    response = app.test_client().post(
        "/api/admin/register", json={"name": "Eve", "email": "eve@example.com", "password": "secret1"}
    )
    assert response.status_code == 403


def test_admin_provisions_client_and_duplicate_conflicts(admin_client, app):
    payload = {"name": "Carol", "email": "carol@example.com", "password": "carol-pass", "company": "C Ltd"}
    created = admin_client.post("/api/admin/register-client", json=payload)
    assert created.status_code == 201
    assert admin_client.post("/api/admin/register-client", json=payload).status_code == 409
    assert login(app.test_client(), "carol@example.com", "carol-pass").get_json()["redirectTo"] == "/portal"


def test_client_cannot_provision_accounts(alice_client):
    response = alice_client.post(
        "/api/admin/register-admin", json={"name": "Mallory", "email": "m@example.com", "password": "secret1"}
    )
    assert response.status_code == 403
    assert response.get_json()["message"] == "Forbidden: Admin access required"


def test_profile_reports_kind_as_role(admin_client):
    body = admin_client.get("/api/admin/profile").get_json()
    assert body["role"] == "admin"
    assert body["adminRole"] == "admin"


def test_change_password_requires_current_password(alice_client, app):
    bad = alice_client.post("/api/admin/change-password", json={"currentPassword": "wrong", "newPassword": "fresh-pass"})
    assert bad.status_code == 400
    ok = alice_client.post(
        "/api/admin/change-password", json={"currentPassword": CLIENT_PASSWORD, "newPassword": "fresh-pass"}
    )
    assert ok.status_code == 200
    assert login(app.test_client(), "alice@example.com", "fresh-pass").status_code == 200


def test_admin_cannot_delete_self(admin_client, seed):
    response = admin_client.delete(f"/api/admin/admins/{seed.admin_id}")
    assert response.status_code == 400
