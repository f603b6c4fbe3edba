from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from brokerdesk.business.policies.models import PolicyStatus
from brokerdesk.models.audit import AuditLog
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


TERMS = {
    "type": "EPS",
    "ambCopay": "20.00",
    "hospCopay": "100.00",
    "maternity": "500.00",
    "tPremium": "180.00",
    "tplus1Premium": "320.00",
    "tplusfPremium": "450.00",
    "taxRate": "0.18",
    "additionalCosts": "0",
}


def test_create_policy_starts_pending(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()
    insurer = seed.insurer()

    response = client.post(
        "/api/policies",
        json={
            "policyNumber": "PS-2026-001",
            "clientId": str(company.id),
            "insurerId": str(insurer.id),
            "startDate": "2026-01-01",
            "endDate": "2026-12-31",
        },
        headers=seed.headers(broker),
    )
    assert response.status_code == 201
    assert response.json()["status"] == "PENDING"
    assert response.json()["taxRate"] is None


def test_activation_requires_complete_terms(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    policy = seed.policy(seed.client(), seed.insurer(), status=PolicyStatus.PENDING)
    path = f"/api/policies/{policy.id}"
    headers = seed.headers(broker)

    incomplete = client.patch(path, json={"status": "ACTIVE", "type": "EPS"}, headers=headers)
    assert incomplete.status_code == 400
    fields = sorted(item["field"] for item in incomplete.json()["details"])
    assert "taxRate" in fields
    assert "tplusfPremium" in fields
    assert "type" not in fields

    activated = client.patch(path, json={"status": "ACTIVE", **TERMS}, headers=headers)
    assert activated.status_code == 200
    assert activated.json()["status"] == "ACTIVE"

    audit = db_session.scalar(select(AuditLog).where(AuditLog.action == "policy.status_changed"))
    assert audit is not None
    assert audit.resource_id == str(policy.id)
    assert audit.event_metadata == {"fromStatus": "PENDING", "toStatus": "ACTIVE"}


def test_only_super_admin_edits_active_policy(client: TestClient, seed: Seed) -> None:
    employee = seed.user(Role.OPERATIONS_EMPLOYEE)
    admin = seed.user(Role.SUPER_ADMIN)
    policy = seed.policy(seed.client(), seed.insurer())
    path = f"/api/policies/{policy.id}"

    denied = client.patch(path, json={"ambCopay": "25.00"}, headers=seed.headers(employee))
    assert denied.status_code == 403

    expired = client.patch(path, json={"status": "EXPIRED"}, headers=seed.headers(admin))
    assert expired.status_code == 200
    assert expired.json()["status"] == "EXPIRED"


def test_pending_policy_cannot_skip_to_cancelled(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)
    policy = seed.policy(seed.client(), seed.insurer(), status=PolicyStatus.PENDING)

    response = client.patch(f"/api/policies/{policy.id}", json={"status": "CANCELLED"}, headers=seed.headers(broker))
    assert response.status_code == 400
    assert [item["field"] for item in response.json()["details"]] == ["status"]


def test_cancelled_policy_stays_cancelled(client: TestClient, seed: Seed) -> None:
    admin = seed.user(Role.SUPER_ADMIN)
    policy = seed.policy(seed.client(), seed.insurer(), status=PolicyStatus.CANCELLED)
    path = f"/api/policies/{policy.id}"
    headers = seed.headers(admin)

    corrected = client.patch(path, json={"type": "EPS"}, headers=headers)
    assert corrected.status_code == 200

    reopened = client.patch(path, json={"status": "ACTIVE"}, headers=headers)
    assert reopened.status_code == 400
