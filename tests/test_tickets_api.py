from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from brokerdesk.models.audit import AuditLog
from brokerdesk.platform.numbering import ticket_codec
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


def _open_ticket(client: TestClient, headers: dict[str, str], client_id: object, **extra: object) -> dict:
    response = client.post(
        "/api/tickets",
        json={"subject": "Card not received", "message": "My insurance card never arrived", "clientId": str(client_id), **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_affiliate_opens_ticket_with_initial_message(client: TestClient, db_session: Session, seed: Seed) -> None:
    company = seed.client("Andes Mining")
    user = seed.user(Role.AFFILIATE, name="Rosa Diaz")
    seed.affiliate(company, user=user)

    body = _open_ticket(client, seed.headers(user), company.id, priority="HIGH")
    assert body["ticketNumber"].startswith("TKT_")
    assert ticket_codec().decode(body["ticketNumber"]) >= 1
    assert body["status"] == "OPEN"
    assert body["priority"] == "HIGH"
    assert body["clientName"] == "Andes Mining"
    assert body["reporterName"] == "Rosa Diaz"
    assert [item["message"] for item in body["messages"]] == ["My insurance card never arrived"]

    audit = db_session.scalar(select(AuditLog).where(AuditLog.action == "ticket.created"))
    assert audit is not None
    assert audit.resource_id == body["id"]


def test_affiliate_cannot_open_ticket_for_other_client(client: TestClient, seed: Seed) -> None:
    own = seed.client()
    other = seed.client()
    user = seed.user(Role.AFFILIATE)
    seed.affiliate(own, user=user)

    response = client.post(
        "/api/tickets",
        json={"subject": "Help me", "message": "hello", "clientId": str(other.id)},
        headers=seed.headers(user),
    )
    assert response.status_code == 404


def test_ticket_numbers_are_distinct(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    headers = seed.headers(broker)

    first = _open_ticket(client, headers, company.id)
    second = _open_ticket(client, headers, company.id)
    assert first["ticketNumber"] != second["ticketNumber"]
    codec = ticket_codec()
    assert codec.decode(second["ticketNumber"]) == codec.decode(first["ticketNumber"]) + 1


def test_affiliate_only_sees_own_tickets(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    user = seed.user(Role.AFFILIATE)
    seed.affiliate(company, user=user)

    mine = _open_ticket(client, seed.headers(user), company.id)
    internal = _open_ticket(client, seed.headers(broker), company.id)

    listing = client.get("/api/tickets", headers=seed.headers(user))
    assert listing.status_code == 200
    assert [row["id"] for row in listing.json()["tickets"]] == [mine["id"]]

    hidden = client.get(f"/api/tickets/{internal['id']}", headers=seed.headers(user))
    assert hidden.status_code == 404


def test_assignment_is_for_brokers_only(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    assignee = seed.user(Role.CLAIMS_EMPLOYEE, name="Lucia Assignee")
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[company.id])
    ticket = _open_ticket(client, seed.headers(admin), company.id)
    path = f"/api/tickets/{ticket['id']}/assign"

    forbidden = client.patch(path, json={"assignedToId": str(assignee.id)}, headers=seed.headers(admin))
    assert forbidden.status_code == 403

    not_broker = client.patch(path, json={"assignedToId": str(admin.id)}, headers=seed.headers(broker))
    assert not_broker.status_code == 400
    assert not_broker.json()["details"][0]["field"] == "assignedToId"

    assigned = client.patch(path, json={"assignedToId": str(assignee.id)}, headers=seed.headers(broker))
    assert assigned.status_code == 200
    assert assigned.json()["assignedToName"] == "Lucia Assignee"


def test_closing_stamps_closed_at_and_blocks_reassignment(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    headers = seed.headers(broker)
    ticket = _open_ticket(client, headers, company.id)

    closed = client.patch(f"/api/tickets/{ticket['id']}", json={"status": "CLOSED"}, headers=headers)
    assert closed.status_code == 200
    assert closed.json()["closedAt"] is not None

    reassign = client.patch(
        f"/api/tickets/{ticket['id']}/assign",
        json={"assignedToId": str(broker.id)},
        headers=headers,
    )
    assert reassign.status_code == 400
    assert reassign.json()["details"][0]["field"] == "status"

    reopened = client.patch(f"/api/tickets/{ticket['id']}", json={"status": "IN_PROGRESS"}, headers=headers)
    assert reopened.status_code == 200
    assert reopened.json()["closedAt"] is None


def test_client_admin_cannot_update_ticket_status(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[company.id])
    ticket = _open_ticket(client, seed.headers(admin), company.id)

    response = client.patch(f"/api/tickets/{ticket['id']}", json={"status": "CLOSED"}, headers=seed.headers(admin))
    assert response.status_code == 403


def test_conversation_messages(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    broker = seed.user(Role.OPERATIONS_EMPLOYEE, name="Support Desk")
    user = seed.user(Role.AFFILIATE)
    seed.affiliate(company, user=user)
    ticket = _open_ticket(client, seed.headers(user), company.id)

    reply = client.post(
        f"/api/tickets/{ticket['id']}/messages",
        json={"message": "We are resending the card"},
        headers=seed.headers(broker),
    )
    assert reply.status_code == 201
    assert reply.json()["authorName"] == "Support Desk"

    detail = client.get(f"/api/tickets/{ticket['id']}", headers=seed.headers(user))
    assert [item["message"] for item in detail.json()["messages"]] == [
        "My insurance card never arrived",
        "We are resending the card",
    ]

    empty = client.post(f"/api/tickets/{ticket['id']}/messages", json={"message": ""}, headers=seed.headers(user))
    assert empty.status_code == 400
