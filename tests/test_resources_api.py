from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from brokerdesk.business.employees.models import Employee
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


def _employee(session: Session, **overrides: object) -> Employee:
    values: dict[str, object] = {
        "first_name": "Marta",
        "last_name": "Quispe",
        "email": "marta@broker.example",
        "employee_code": "EMP-1",
        "department": "Claims",
    }
    values.update(overrides)
    employee = Employee(**values)
    session.add(employee)
    session.commit()
    return employee


def test_create_client_returns_camel_case_dto(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)

    response = client.post(
        "/api/clients",
        json={"name": "Andes Mining", "taxId": "20123456789", "email": "hr@andes.example"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["taxId"] == "20123456789"
    assert body["isActive"] is True
    assert "tax_id" not in body


def test_duplicate_tax_id_is_conflict_naming_field(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)
    seed.client("Existing", tax_id="20999999999")

    response = client.post(
        "/api/clients",
        json={"name": "Copycat", "taxId": "20999999999"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "CONFLICT"
    assert body["details"] == {"field": "taxId"}


def test_strict_create_rejects_unknown_fields(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)

    response = client.post(
        "/api/clients",
        json={"name": "Andes Mining", "taxId": "20123456789", "nickname": "andes"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 400
    assert [item["field"] for item in response.json()["details"]] == ["nickname"]


def test_strip_update_ignores_unknown_fields(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)
    company = seed.client("Andes Mining")

    response = client.patch(
        f"/api/clients/{company.id}",
        json={"phone": "+51 1 555 0100", "nickname": "andes"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 200
    assert response.json()["phone"] == "+51 1 555 0100"


def test_validation_lists_every_failing_field(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)

    response = client.post(
        "/api/insurers",
        json={"name": "X", "email": "not-an-email", "code": ""},
        headers=seed.headers(broker),
    )
    assert response.status_code == 400
    fields = sorted(item["field"] for item in response.json()["details"])
    assert fields == ["code", "email", "name"]


def test_empty_employee_patch_is_validation_failed(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)
    employee = _employee(db_session)

    response = client.patch(f"/api/employees/{employee.id}", json={}, headers=seed.headers(broker))
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_FAILED"
    assert body["details"] == [{"field": "body", "message": "At least one field must be provided"}]


def test_employee_patch_field_errors_come_before_empty_check(
    client: TestClient,
    db_session: Session,
    seed: Seed,
) -> None:
    broker = seed.user(Role.SUPER_ADMIN)
    employee = _employee(db_session)

    response = client.patch(
        f"/api/employees/{employee.id}",
        json={"unknownField": 1},
        headers=seed.headers(broker),
    )
    assert response.status_code == 400
    assert [item["field"] for item in response.json()["details"]] == ["unknownField"]


def test_employee_patch_is_idempotent_and_null_clears(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    employee = _employee(db_session)
    headers = seed.headers(broker)

    first = client.patch(
        f"/api/employees/{employee.id}",
        json={"position": "Analyst", "department": None},
        headers=headers,
    )
    assert first.status_code == 200
    second = client.patch(
        f"/api/employees/{employee.id}",
        json={"position": "Analyst", "department": None},
        headers=headers,
    )
    assert second.status_code == 200

    for key in ("position", "department", "firstName", "email", "employeeCode"):
        assert first.json()[key] == second.json()[key]
    assert second.json()["department"] is None
    assert second.json()["firstName"] == "Marta"


def test_employee_patch_rejects_null_for_required_column(
    client: TestClient,
    db_session: Session,
    seed: Seed,
) -> None:
    broker = seed.user(Role.SUPER_ADMIN)
    employee = _employee(db_session)

    response = client.patch(f"/api/employees/{employee.id}", json={"email": None}, headers=seed.headers(broker))
    assert response.status_code == 400
    assert [item["field"] for item in response.json()["details"]] == ["email"]


def test_employee_email_conflict(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)
    _employee(db_session)
    other = _employee(db_session, email="other@broker.example", employee_code="EMP-2")

    response = client.patch(
        f"/api/employees/{other.id}",
        json={"email": "marta@broker.example"},
        headers=seed.headers(broker),
    )
    assert response.status_code == 409
    assert response.json()["details"] == {"field": "email"}


def test_client_admin_cannot_write_clients(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[company.id])

    response = client.patch(f"/api/clients/{company.id}", json={"phone": "1"}, headers=seed.headers(admin))
    assert response.status_code == 403


def test_policy_listing_carries_denormalized_names(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client("Andes Mining")
    insurer = seed.insurer("Pacifico Seguros")
    seed.policy(company, insurer)

    response = client.get("/api/policies", headers=seed.headers(broker))
    assert response.status_code == 200
    row = response.json()["policies"][0]
    assert row["clientName"] == "Andes Mining"
    assert row["insurerName"] == "Pacifico Seguros"


def test_policy_member_added_twice_is_conflict(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()
    member = seed.affiliate(company)
    policy = seed.policy(company, seed.insurer())
    headers = seed.headers(broker)

    first = client.post(f"/api/policies/{policy.id}/affiliates", json={"affiliateId": str(member.id)}, headers=headers)
    assert first.status_code == 201
    second = client.post(f"/api/policies/{policy.id}/affiliates", json={"affiliateId": str(member.id)}, headers=headers)
    assert second.status_code == 409
    assert second.json()["details"] == {"field": "affiliateId"}

    removed = client.delete(f"/api/policies/{policy.id}/affiliates/{member.id}", headers=headers)
    assert removed.status_code == 200
    again = client.post(f"/api/policies/{policy.id}/affiliates", json={"affiliateId": str(member.id)}, headers=headers)
    assert again.status_code == 201
