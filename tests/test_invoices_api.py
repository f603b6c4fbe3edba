from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from brokerdesk.business.invoices.models import InvoiceStatus
from brokerdesk.models.audit import AuditLog
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


def _payload(company_id: object, insurer_id: object, **overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "invoiceNumber": "F-2026-001",
        "insurerInvoiceNumber": "PS-88120",
        "clientId": str(company_id),
        "insurerId": str(insurer_id),
        "totalAmount": "4520.00",
        "issueDate": "2026-03-01",
    }
    body.update(overrides)
    return body


def test_create_invoice_starts_pending(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)
    company = seed.client("Andes Mining")
    insurer = seed.insurer("Pacifico Seguros")

    response = client.post("/api/invoices", json=_payload(company.id, insurer.id), headers=seed.headers(broker))
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["paymentStatus"] == "PENDING_PAYMENT"
    assert body["clientName"] == "Andes Mining"
    assert body["insurerName"] == "Pacifico Seguros"


def test_create_rejects_initial_status(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)
    company = seed.client()
    insurer = seed.insurer()

    response = client.post(
        "/api/invoices",
        json=_payload(company.id, insurer.id, status="VALIDATED"),
        headers=seed.headers(broker),
    )
    assert response.status_code == 400
    assert [item["field"] for item in response.json()["details"]] == ["status"]


def test_insurer_invoice_number_is_unique_per_insurer(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)
    company = seed.client()
    insurer = seed.insurer()
    other_insurer = seed.insurer()
    seed.invoice(company, insurer, insurer_invoice_number="PS-88120")
    headers = seed.headers(broker)

    duplicate = client.post("/api/invoices", json=_payload(company.id, insurer.id), headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["details"] == {"field": "insurerInvoiceNumber"}

    elsewhere = client.post("/api/invoices", json=_payload(company.id, other_insurer.id), headers=headers)
    assert elsewhere.status_code == 201


def test_affiliate_is_forbidden(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    user = seed.user(Role.AFFILIATE)
    seed.affiliate(company, user=user)
    invoice = seed.invoice(company, seed.insurer())

    listing = client.get("/api/invoices", headers=seed.headers(user))
    assert listing.status_code == 403
    detail = client.get(f"/api/invoices/{invoice.id}", headers=seed.headers(user))
    assert detail.status_code == 403


def test_client_admin_reads_but_cannot_write(client: TestClient, seed: Seed) -> None:
    company = seed.client()
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[company.id])
    invoice = seed.invoice(company, seed.insurer())

    listing = client.get("/api/invoices", headers=seed.headers(admin))
    assert listing.status_code == 200
    assert [row["id"] for row in listing.json()["invoices"]] == [str(invoice.id)]

    response = client.patch(f"/api/invoices/{invoice.id}", json={"notes": "checked"}, headers=seed.headers(admin))
    assert response.status_code == 403


def test_cancelled_invoice_is_immutable(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)
    invoice = seed.invoice(seed.client(), seed.insurer(), status=InvoiceStatus.CANCELLED)

    response = client.patch(f"/api/invoices/{invoice.id}", json={"notes": "duplicate"}, headers=seed.headers(broker))
    assert response.status_code == 400
    assert [item["field"] for item in response.json()["details"]] == ["status"]


def test_validation_requires_review_fields(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    invoice = seed.invoice(seed.client(), seed.insurer())
    path = f"/api/invoices/{invoice.id}"
    headers = seed.headers(broker)

    missing = client.patch(path, json={"status": "VALIDATED"}, headers=headers)
    assert missing.status_code == 400
    assert sorted(item["field"] for item in missing.json()["details"]) == ["billingPeriod", "dueDate", "taxAmount"]

    validated = client.patch(
        path,
        json={"status": "VALIDATED", "billingPeriod": "2026-03", "taxAmount": "813.60", "dueDate": "2026-03-31"},
        headers=headers,
    )
    assert validated.status_code == 200
    assert validated.json()["status"] == "VALIDATED"


def test_validated_invoice_locks_entry_fields(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    invoice = seed.invoice(seed.client(), seed.insurer(), status=InvoiceStatus.VALIDATED)
    path = f"/api/invoices/{invoice.id}"
    headers = seed.headers(broker)

    locked = client.patch(path, json={"totalAmount": "10.00"}, headers=headers)
    assert locked.status_code == 400
    assert [item["field"] for item in locked.json()["details"]] == ["totalAmount"]

    paid = client.patch(path, json={"paymentStatus": "PAID", "paymentDate": "2026-04-02"}, headers=headers)
    assert paid.status_code == 200
    assert paid.json()["paymentStatus"] == "PAID"
    assert paid.json()["paymentDate"] == "2026-04-02"

    audit = db_session.scalar(select(AuditLog).where(AuditLog.action == "invoice.updated"))
    assert audit is not None
    assert audit.changes["payment_status"] == {"before": "PENDING_PAYMENT", "after": "PAID"}


def test_discrepancy_resolution_needs_notes(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    invoice = seed.invoice(seed.client(), seed.insurer(), status=InvoiceStatus.DISCREPANCY)
    path = f"/api/invoices/{invoice.id}"
    headers = seed.headers(broker)

    missing = client.patch(path, json={"status": "VALIDATED"}, headers=headers)
    assert missing.status_code == 400
    assert [item["field"] for item in missing.json()["details"]] == ["notes"]

    resolved = client.patch(
        path,
        json={"status": "VALIDATED", "notes": "Insurer billed two leavers; credit note requested"},
        headers=headers,
    )
    assert resolved.status_code == 200

    back_to_pending = client.patch(path, json={"status": "PENDING"}, headers=headers)
    assert back_to_pending.status_code == 400
    assert [item["field"] for item in back_to_pending.json()["details"]] == ["status"]
