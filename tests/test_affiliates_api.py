from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from brokerdesk.business.affiliates.models import Affiliate
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


def _fields(body: dict) -> list[str]:
    return sorted(item["field"] for item in body["details"])


def test_owner_requires_email(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()

    response = client.post(
        "/api/affiliates",
        json={"clientId": str(company.id), "firstName": "Rosa", "lastName": "Huaman", "affiliateType": "OWNER"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 400
    assert _fields(response.json()) == ["email"]


def test_dependent_requires_primary(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()

    response = client.post(
        "/api/affiliates",
        json={"clientId": str(company.id), "firstName": "Tomas", "lastName": "Huaman", "affiliateType": "DEPENDENT"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 400
    assert _fields(response.json()) == ["primaryAffiliateId"]


def test_dependent_primary_must_share_client(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()
    other_company = seed.client()
    foreign_owner = seed.affiliate(other_company, email="owner@other.example")

    response = client.post(
        "/api/affiliates",
        json={
            "clientId": str(company.id),
            "firstName": "Tomas",
            "lastName": "Huaman",
            "affiliateType": "DEPENDENT",
            "primaryAffiliateId": str(foreign_owner.id),
        },
        headers=seed.headers(broker),
    )
    assert response.status_code == 400
    assert _fields(response.json()) == ["primaryAffiliateId"]


def test_create_dependent_under_owner(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client("Andes Mining")
    owner = seed.affiliate(company, first_name="Rosa", email="rosa@andes.example")

    response = client.post(
        "/api/affiliates",
        json={
            "clientId": str(company.id),
            "firstName": "Tomas",
            "lastName": "Huaman",
            "affiliateType": "DEPENDENT",
            "primaryAffiliateId": str(owner.id),
        },
        headers=seed.headers(broker),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["primaryAffiliateFirstName"] == "Rosa"
    assert body["clientName"] == "Andes Mining"
    assert body["hasUserAccount"] is False


def test_owner_with_active_dependents_cannot_be_demoted(
    client: TestClient,
    db_session: Session,
    seed: Seed,
) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()
    first = seed.affiliate(company, email="first@andes.example")
    second = seed.affiliate(company, email="second@andes.example")
    seed.affiliate(company, first_name="Tomas", primary=first)

    response = client.patch(
        f"/api/affiliates/{first.id}",
        json={"affiliateType": "DEPENDENT", "primaryAffiliateId": str(second.id)},
        headers=seed.headers(broker),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_FAILED"
    assert _fields(response.json()) == ["affiliateType"]

    db_session.expire_all()
    assert db_session.get(Affiliate, first.id).affiliate_type == "OWNER"


def test_owner_with_active_dependents_cannot_be_deactivated(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()
    owner = seed.affiliate(company, email="owner@andes.example")
    seed.affiliate(company, first_name="Tomas", primary=owner)

    response = client.patch(f"/api/affiliates/{owner.id}", json={"isActive": False}, headers=seed.headers(broker))
    assert response.status_code == 400
    assert _fields(response.json()) == ["isActive"]


def test_owner_with_only_inactive_dependents_can_be_deactivated(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()
    owner = seed.affiliate(company, email="owner@andes.example")
    seed.affiliate(company, first_name="Tomas", primary=owner, is_active=False)

    response = client.patch(f"/api/affiliates/{owner.id}", json={"isActive": False}, headers=seed.headers(broker))
    assert response.status_code == 200
    assert response.json()["isActive"] is False


def test_promoting_dependent_clears_primary(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()
    owner = seed.affiliate(company, email="owner@andes.example")
    child = seed.affiliate(company, first_name="Tomas", primary=owner)

    response = client.patch(
        f"/api/affiliates/{child.id}",
        json={"affiliateType": "OWNER", "email": "tomas@andesmining.com"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["affiliateType"] == "OWNER"
    assert body["primaryAffiliateId"] is None


def test_document_number_conflict(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()
    first = seed.affiliate(company, email="first@andes.example")
    second = seed.affiliate(company, email="second@andes.example")
    first.document_number = "45678912"
    db_session.commit()

    response = client.patch(
        f"/api/affiliates/{second.id}",
        json={"documentNumber": "45678912"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 409
    assert response.json()["details"] == {"field": "documentNumber"}


def test_affiliate_lists_itself_and_dependents(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    user = seed.user(Role.AFFILIATE)
    me = seed.affiliate(company, user=user, email="me@andes.example")
    child = seed.affiliate(company, first_name="Tomas", primary=me)
    neighbour = seed.affiliate(company, email="neighbour@andes.example")
    seed.affiliate(company, first_name="Lucia", primary=neighbour)

    response = client.get("/api/affiliates", headers=seed.headers(user))
    assert response.status_code == 200
    ids = {row["id"] for row in response.json()["affiliates"]}
    assert ids == {str(me.id), str(child.id)}
    assert response.json()["pagination"]["total"] == 2


def test_affiliate_cannot_write_affiliates(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    user = seed.user(Role.AFFILIATE)
    me = seed.affiliate(company, user=user, email="me@andes.example")

    response = client.patch(f"/api/affiliates/{me.id}", json={"phone": "555"}, headers=seed.headers(user))
    assert response.status_code == 403
