from __future__ import annotations

import uuid
from typing import Any

import pytest
from fastapi.testclient import TestClient

from brokerdesk.business.affiliates import api as affiliates_api
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import Role
from brokerdesk.platform.security.scope import ScopeDecision, resolve_client_scope
from tests.factories import Seed


def _caller(role: Role | None, **kwargs: Any) -> Caller:
    return Caller(user_id=uuid.uuid4(), email="caller@example.com", name=None, role=role, **kwargs)


def test_resolve_client_scope_decisions() -> None:
    client_id = uuid.uuid4()
    other_id = uuid.uuid4()

    assert resolve_client_scope(_caller(Role.OPERATIONS_EMPLOYEE), other_id) is ScopeDecision.ALLOWED
    admin = _caller(Role.CLIENT_ADMIN, client_ids=frozenset({client_id}))
    assert resolve_client_scope(admin, client_id) is ScopeDecision.ALLOWED
    assert resolve_client_scope(admin, other_id) is ScopeDecision.OUT_OF_SCOPE

    affiliate = _caller(Role.AFFILIATE, affiliate_id=uuid.uuid4(), affiliate_client_id=client_id)
    assert resolve_client_scope(affiliate, client_id) is ScopeDecision.ALLOWED
    assert resolve_client_scope(affiliate, other_id) is ScopeDecision.OUT_OF_SCOPE
    assert resolve_client_scope(affiliate, client_id, affiliate_allowed=False) is ScopeDecision.ROLE_FORBIDDEN
    assert resolve_client_scope(_caller(None), client_id) is ScopeDecision.ROLE_FORBIDDEN


def test_client_admin_without_grant_gets_not_found(client: TestClient, seed: Seed) -> None:
    granted = seed.client("Granted Co")
    foreign = seed.client("Foreign Co")
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[granted.id])

    own = client.get(f"/api/clients/{granted.id}", headers=seed.headers(admin))
    assert own.status_code == 200
    assert own.json()["name"] == "Granted Co"

    other = client.get(f"/api/clients/{foreign.id}", headers=seed.headers(admin))
    assert other.status_code == 404
    assert other.json()["code"] == "NOT_FOUND"

    missing = client.get(f"/api/clients/{uuid.uuid4()}", headers=seed.headers(admin))
    assert missing.status_code == 404
    assert missing.json()["message"] == other.json()["message"]


def test_client_admin_list_only_contains_granted_clients(client: TestClient, seed: Seed) -> None:
    granted = seed.client("Granted Co")
    seed.client("Foreign Co")
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[granted.id])

    response = client.get("/api/clients", headers=seed.headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert [row["id"] for row in body["clients"]] == [str(granted.id)]
    assert body["pagination"]["total"] == 1


def test_client_admin_with_no_grants_sees_empty_list(client: TestClient, seed: Seed) -> None:
    seed.client("Foreign Co")
    admin = seed.user(Role.CLIENT_ADMIN)

    response = client.get("/api/clients", headers=seed.headers(admin))
    assert response.status_code == 200
    assert response.json()["pagination"] == {"total": 0, "page": 1, "limit": 20, "totalPages": 0, "hasMore": False}


def test_client_admin_filter_outside_grant_is_not_found(client: TestClient, seed: Seed) -> None:
    granted = seed.client()
    foreign = seed.client()
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[granted.id])

    response = client.get("/api/affiliates", params={"clientId": str(foreign.id)}, headers=seed.headers(admin))
    assert response.status_code == 404


def test_malformed_client_id_rejected_before_service(
    client: TestClient,
    seed: Seed,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    broker = seed.user(Role.SUPER_ADMIN)
    calls: list[Any] = []

    class _RecordingService:
        def list_affiliates(self, *args: Any, **kwargs: Any) -> None:
            calls.append((args, kwargs))
            raise AssertionError("service must not be reached")

    monkeypatch.setattr(affiliates_api, "affiliate_service", _RecordingService())

    response = client.get("/api/affiliates", params={"clientId": "not-a-uuid"}, headers=seed.headers(broker))
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_FAILED"
    assert [item["field"] for item in body["details"]] == ["clientId"]
    assert calls == []


def test_affiliate_patients_lookup_for_other_affiliate_is_not_found(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    user = seed.user(Role.AFFILIATE)
    me = seed.affiliate(company, user=user)
    dependent = seed.affiliate(company, first_name="Luis", primary=me)
    stranger = seed.affiliate(company, first_name="Eva")

    own = client.get("/api/claims/lookups/patients", params={"affiliateId": str(me.id)}, headers=seed.headers(user))
    assert own.status_code == 200
    assert [row["id"] for row in own.json()["patients"]] == [str(me.id), str(dependent.id)]

    other = client.get(
        "/api/claims/lookups/patients",
        params={"affiliateId": str(stranger.id)},
        headers=seed.headers(user),
    )
    assert other.status_code == 404


def test_affiliate_sees_only_own_claims(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    broker = seed.user(Role.CLAIMS_EMPLOYEE)
    user = seed.user(Role.AFFILIATE)
    me = seed.affiliate(company, user=user)
    stranger = seed.affiliate(company, first_name="Eva")
    mine = seed.claim(me, broker)
    theirs = seed.claim(stranger, broker)

    listing = client.get("/api/claims", headers=seed.headers(user))
    assert listing.status_code == 200
    assert [row["id"] for row in listing.json()["claims"]] == [str(mine.id)]

    detail = client.get(f"/api/claims/{theirs.id}", headers=seed.headers(user))
    assert detail.status_code == 404


def test_affiliate_is_forbidden_on_policies(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    user = seed.user(Role.AFFILIATE)
    seed.affiliate(company, user=user)

    response = client.get("/api/policies", headers=seed.headers(user))
    assert response.status_code == 403
