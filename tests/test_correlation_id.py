from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from brokerdesk.core.config import get_settings
from brokerdesk.middleware.rate_limit import reset_rate_limiter
from brokerdesk.models.audit import AuditLog
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


def test_generated_correlation_id_returned_in_header_and_error_envelope(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)

    response = client.get(f"/api/clients/{uuid.uuid4()}", headers=seed.headers(broker))
    assert response.status_code == 404
    header_value = response.headers.get("x-correlation-id")
    assert header_value
    assert response.json()["correlationId"] == header_value


def test_correlation_id_respected_when_provided(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)

    response = client.get(
        f"/api/clients/{uuid.uuid4()}",
        headers={**seed.headers(broker), "X-Correlation-Id": "abc-123"},
    )
    assert response.status_code == 404
    assert response.headers.get("x-correlation-id") == "abc-123"
    assert response.json()["correlationId"] == "abc-123"


def test_oversized_correlation_id_is_replaced(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Correlation-Id": "x" * 200})
    assert response.status_code == 200
    assert response.headers.get("x-correlation-id") != "x" * 200


def test_audit_uses_request_correlation_id(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    company = seed.client()

    response = client.post(
        "/api/tickets",
        json={"subject": "Correlated", "message": "hello", "clientId": str(company.id)},
        headers={**seed.headers(broker), "X-Correlation-Id": "corr-audit-1"},
    )
    assert response.status_code == 201

    entry = db_session.scalar(select(AuditLog).where(AuditLog.resource_id == response.json()["id"]))
    assert entry is not None
    assert entry.correlation_id == "corr-audit-1"
    assert entry.user_id == broker.id


def test_rate_limited_response_includes_correlation_id(
    client: TestClient,
    seed: Seed,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "false")
    monkeypatch.setenv("RATE_LIMIT_MUTATIONS_PER_MINUTE", "1")
    get_settings.cache_clear()
    reset_rate_limiter()
    headers = {**seed.headers(broker), "X-Correlation-Id": "corr-rate-1"}

    first = client.post("/api/clients", json={"name": "Rate Client 1", "taxId": "RL0001"}, headers=headers)
    assert first.status_code == 201

    second = client.post("/api/clients", json={"name": "Rate Client 2", "taxId": "RL0002"}, headers=headers)
    assert second.status_code == 429
    assert second.json()["correlationId"] == "corr-rate-1"
    assert second.headers.get("x-correlation-id") == "corr-rate-1"
