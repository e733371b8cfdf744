import pytest

from clientdesk import create_app
from clientdesk.config import TestingConfig
from clientdesk.extensions import db
from clientdesk.models import Ticket, TicketStatus

from .conftest import CLIENT_PASSWORD, login


def _status(client, ticket_id, status):
    return client.patch(f"/api/tickets/{ticket_id}/status", json={"status": status})


def _reply(client, ticket_id, text="Any update?"):
    return client.post(f"/api/tickets/{ticket_id}/messages", json={"message": text})


def test_full_conversation_lifecycle(admin_client, alice_client, open_ticket, seed):
    ticket = open_ticket(priority="high")
    assert ticket["status"] == "open"
    assert ticket["priority"] == "high"
    tid = ticket["id"]

    replied = _reply(admin_client, tid, "Looking into it").get_json()
    assert replied["status"] == "in-progress"
    assert replied["assignedTo"] is None

    assigned = admin_client.patch(f"/api/tickets/{tid}/assign", json={}).get_json()
    assert assigned["status"] == "in-progress"
    assert assigned["assignedTo"]["id"] == seed.admin_id

    assert _reply(alice_client, tid, "Still broken").get_json()["status"] == "open"

    resolved = _status(admin_client, tid, "resolved").get_json()
    assert resolved["resolvedAt"] is not None

    closed = _status(alice_client, tid, "closed").get_json()
    assert closed["status"] == "closed"
    assert closed["closedAt"] is not None
    assert closed["resolvedAt"] == resolved["resolvedAt"]
    assert [m["sender"] for m in closed["messages"]] == ["admin", "client"]


def test_resolved_at_survives_reopening(admin_client, open_ticket):
    tid = open_ticket()["id"]
    first = _status(admin_client, tid, "resolved").get_json()["resolvedAt"]
    _status(admin_client, tid, "in-progress")
    again = _status(admin_client, tid, "resolved").get_json()
    assert again["resolvedAt"] == first


def test_client_reply_always_reopens(admin_client, alice_client, open_ticket):
    tid = open_ticket()["id"]
    for status in ("in-progress", "resolved", "open"):
        _status(admin_client, tid, status)
        assert _reply(alice_client, tid).get_json()["status"] == "open"


def test_admin_reply_always_moves_to_in_progress(admin_client, open_ticket):
    tid = open_ticket()["id"]
    for status in ("open", "resolved", "closed"):
        _status(admin_client, tid, status)
        assert _reply(admin_client, tid).get_json()["status"] == "in-progress"


def test_closed_ticket_rejects_client_reply_by_default(admin_client, alice_client, open_ticket):
    tid = open_ticket()["id"]
    _status(alice_client, tid, "closed")
    response = _reply(alice_client, tid)
    assert response.status_code == 403
    assert response.get_json()["message"] == "Ticket is closed"
    assert admin_client.get(f"/api/tickets/{tid}").get_json()["messages"] == []


class ReopenConfig(TestingConfig):
    TICKET_CLOSED_REPLY_POLICY = "reopen"


def test_closed_ticket_reopens_under_reopen_policy():
    from clientdesk.services.accounts import create_client

    app = create_app(ReopenConfig)
    with app.app_context():
        create_client(name="Dana", email="dana@example.com", password=CLIENT_PASSWORD)
    client = app.test_client()
    login(client, "dana@example.com", CLIENT_PASSWORD)
    tid = client.post("/api/tickets", json={"subject": "Help", "description": "Please"}).get_json()["id"]
    closed = _status(client, tid, "closed").get_json()

    reopened = _reply(client, tid, "Actually not fixed").get_json()
    assert reopened["status"] == "open"
    assert reopened["closedAt"] == closed["closedAt"]


def test_client_may_only_close(alice_client, open_ticket):
    tid = open_ticket()["id"]
    response = _status(alice_client, tid, "resolved")
    assert response.status_code == 403
    assert response.get_json()["message"] == "Clients can only close tickets"


def test_client_closing_twice_is_a_no_op(alice_client, open_ticket):
    tid = open_ticket()["id"]
    first = _status(alice_client, tid, "closed").get_json()
    second = _status(alice_client, tid, "closed")
    assert second.status_code == 200
    assert second.get_json()["closedAt"] == first["closedAt"]


def test_other_clients_ticket_is_forbidden_missing_is_not_found(bob_client, open_ticket):
    tid = open_ticket()["id"]
    assert bob_client.get(f"/api/tickets/{tid}").status_code == 403
    assert _reply(bob_client, tid).status_code == 403
    assert _status(bob_client, tid, "closed").status_code == 403
    assert bob_client.get("/api/tickets/9999").status_code == 404


def test_foreign_ticket_status_is_forbidden_before_body_is_validated(bob_client, open_ticket):
    tid = open_ticket()["id"]
    response = _status(bob_client, tid, "bogus")
    assert response.status_code == 403


def test_listing_is_scoped_to_the_client(admin_client, alice_client, bob_client, open_ticket):
    open_ticket()
    bob_client.post("/api/tickets", json={"subject": "Bob's issue", "description": "Details"})

    assert [t["subject"] for t in alice_client.get("/api/tickets").get_json()] == ["Site is down"]
    assert len(admin_client.get("/api/tickets").get_json()) == 2
    assert alice_client.get("/api/tickets/stats").get_json()["total"] == 1
    assert admin_client.get("/api/tickets/stats").get_json()["open"] == 2


def test_list_filters(admin_client, open_ticket):
    open_ticket(priority="low", subject="Billing question", category="billing")
    open_ticket()
    assert len(admin_client.get("/api/tickets?priority=low").get_json()) == 1
    assert len(admin_client.get("/api/tickets?priority=high").get_json()) == 1
    assert admin_client.get("/api/tickets?priority=urgent").status_code == 400
    assert len(admin_client.get("/api/tickets?category=billing").get_json()) == 1
    assert len(admin_client.get("/api/tickets?search=billing").get_json()) == 1
    assert admin_client.get("/api/tickets?status=bogus").status_code == 400


def test_ticket_numbers_are_sequential(app, open_ticket):
    numbers = [open_ticket()["ticketNumber"] for _ in range(3)]
    assert numbers == ["TKT-00001", "TKT-00002", "TKT-00003"]


def test_ticket_numbers_are_never_reused_after_delete(admin_client, open_ticket):
    first = open_ticket()
    admin_client.delete(f"/api/tickets/{first['id']}")
    assert open_ticket()["ticketNumber"] == "TKT-00002"


def test_admin_must_name_an_existing_client(admin_client, seed):
    missing = admin_client.post("/api/tickets", json={"subject": "x", "description": "y"})
    assert missing.status_code == 400
    unknown = admin_client.post("/api/tickets", json={"subject": "x", "description": "y", "client": 999})
    assert unknown.status_code == 400
    ok = admin_client.post("/api/tickets", json={"subject": "x", "description": "y", "client": seed.bob_id})
    assert ok.status_code == 201
    assert ok.get_json()["client"]["id"] == seed.bob_id


def test_client_cannot_open_ticket_for_someone_else(alice_client, seed):
    body = alice_client.post(
        "/api/tickets", json={"subject": "x", "description": "y", "client": seed.bob_id}
    ).get_json()
    assert body["client"]["id"] == seed.alice_id


def test_initial_message_and_attachments(alice_client):
    response = alice_client.post(
        "/api/tickets",
        json={
            "subject": "Logo",
            "description": "Wrong colour",
            "message": "See attached",
            "attachments": [{"name": "shot.png", "url": "https://cdn.example.com/shot.png"}],
        },
    )
    message = response.get_json()["messages"][0]
    assert message["sender"] == "client"
    assert message["senderName"] == "Alice"
    assert message["attachments"] == [{"name": "shot.png", "url": "https://cdn.example.com/shot.png"}]


@pytest.mark.parametrize("text", ["", "   ", "x" * 4001])
def test_message_text_is_validated(alice_client, open_ticket, text):
    tid = open_ticket()["id"]
    assert _reply(alice_client, tid, text).status_code == 400


def test_assign_rejects_unknown_admin_and_clients(admin_client, alice_client, open_ticket):
    tid = open_ticket()["id"]
    assert admin_client.patch(f"/api/tickets/{tid}/assign", json={"adminId": 999}).status_code == 400
    assert alice_client.patch(f"/api/tickets/{tid}/assign", json={}).status_code == 403


def test_only_admin_deletes(app, admin_client, alice_client, open_ticket):
    tid = open_ticket(message="first")["id"]
    assert alice_client.delete(f"/api/tickets/{tid}").status_code == 403
    assert admin_client.delete(f"/api/tickets/{tid}").status_code == 200
    with app.app_context():
        assert db.session.get(Ticket, tid) is None


def test_status_change_persists(app, admin_client, open_ticket):
    tid = open_ticket()["id"]
    _status(admin_client, tid, "resolved")
    with app.app_context():
        assert db.session.get(Ticket, tid).status == TicketStatus.RESOLVED
