from __future__ import annotations

from datetime import date

from fastapi.testclient import TestClient

from brokerdesk.business.policies.models import PolicyStatus
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


def test_broker_sees_every_active_client(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.CLAIMS_EMPLOYEE)
    seed.client("Beta Foods")
    seed.client("Andes Mining")
    seed.client("Closed Corp", is_active=False)

    response = client.get("/api/claims/lookups/clients", headers=seed.headers(broker))
    assert response.status_code == 200
    assert [row["name"] for row in response.json()["clients"]] == ["Andes Mining", "Beta Foods"]


def test_client_admin_and_affiliate_see_their_own_clients(client: TestClient, seed: Seed) -> None:
    granted = seed.client("Andes Mining")
    seed.client("Beta Foods")
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[granted.id])
    user = seed.user(Role.AFFILIATE)
    seed.affiliate(granted, user=user)

    for caller in (admin, user):
        response = client.get("/api/claims/lookups/clients", headers=seed.headers(caller))
        assert [row["id"] for row in response.json()["clients"]] == [str(granted.id)]


def test_affiliate_lookup_lists_active_owners(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.CLAIMS_EMPLOYEE)
    company = seed.client()
    zapata = seed.affiliate(company, last_name="Zapata")
    alva = seed.affiliate(company, last_name="Alva")
    seed.affiliate(company, first_name="Tomas", primary=alva)
    seed.affiliate(company, last_name="Baja", is_active=False)

    response = client.get(
        "/api/claims/lookups/affiliates",
        params={"clientId": str(company.id)},
        headers=seed.headers(broker),
    )
    assert response.status_code == 200
    assert [row["id"] for row in response.json()["affiliates"]] == [str(alva.id), str(zapata.id)]


def test_affiliate_lookup_for_affiliate_is_only_itself(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    other = seed.client()
    user = seed.user(Role.AFFILIATE)
    me = seed.affiliate(company, user=user)
    seed.affiliate(company, last_name="Neighbour")
    headers = seed.headers(user)

    own = client.get("/api/claims/lookups/affiliates", params={"clientId": str(company.id)}, headers=headers)
    assert [row["id"] for row in own.json()["affiliates"]] == [str(me.id)]

    foreign = client.get("/api/claims/lookups/affiliates", params={"clientId": str(other.id)}, headers=headers)
    assert foreign.status_code == 404


def test_affiliate_lookup_rejects_ungranted_and_inactive_clients(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    closed = seed.client(is_active=False)
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[closed.id])
    broker = seed.user(Role.CLAIMS_EMPLOYEE)

    ungranted = client.get(
        "/api/claims/lookups/affiliates",
        params={"clientId": str(company.id)},
        headers=seed.headers(admin),
    )
    assert ungranted.status_code == 404

    inactive = client.get(
        "/api/claims/lookups/affiliates",
        params={"clientId": str(closed.id)},
        headers=seed.headers(broker),
    )
    assert inactive.status_code == 400
    assert [item["field"] for item in inactive.json()["details"]] == ["clientId"]


def test_available_policies_cover_the_claim_affiliate(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.CLAIMS_EMPLOYEE)
    company = seed.client()
    insurer = seed.insurer("Pacifico Seguros")
    owner = seed.affiliate(company)
    claim = seed.claim(owner, broker)

    covering = seed.policy(company, insurer, end_date=date(2099, 12, 31))
    seed.member(covering, owner)
    pending = seed.policy(company, insurer, status=PolicyStatus.PENDING, end_date=date(2099, 12, 31))
    seed.member(pending, owner)
    lapsed = seed.policy(company, insurer, end_date=date(2025, 12, 31))
    seed.member(lapsed, owner)
    removed = seed.policy(company, insurer, end_date=date(2099, 12, 31))
    seed.member(removed, owner, is_active=False)
    seed.policy(company, insurer, end_date=date(2099, 12, 31))

    response = client.get(f"/api/claims/{claim.id}/available-policies", headers=seed.headers(broker))
    assert response.status_code == 200
    rows = response.json()["policies"]
    assert [row["id"] for row in rows] == [str(covering.id)]
    assert rows[0]["insurerName"] == "Pacifico Seguros"


def test_available_policies_follow_claim_scope(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.CLAIMS_EMPLOYEE)
    company = seed.client()
    claim = seed.claim(seed.affiliate(company), broker)
    stranger = seed.user(Role.AFFILIATE)
    seed.affiliate(company, user=stranger)

    response = client.get(f"/api/claims/{claim.id}/available-policies", headers=seed.headers(stranger))
    assert response.status_code == 404
