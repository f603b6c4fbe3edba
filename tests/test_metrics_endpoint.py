from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from brokerdesk.core.config import get_settings
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


@pytest.fixture()
def metrics_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_ENABLED", "true")
    get_settings.cache_clear()


@pytest.mark.usefixtures("metrics_enabled")
def test_metrics_endpoint_exposes_http_and_domain_metrics(client: TestClient, seed: Seed) -> None:
    admin = seed.user(Role.SUPER_ADMIN)
    company = seed.client()
    outsider = seed.user(Role.CLIENT_ADMIN)

    assert client.get("/health").status_code == 200
    ticket = client.post(
        "/api/tickets",
        json={"subject": "Metrics ticket", "message": "hello", "clientId": str(company.id)},
        headers=seed.headers(admin),
    )
    assert ticket.status_code == 201
    assert client.get(f"/api/clients/{company.id}", headers=seed.headers(outsider)).status_code == 404

    metrics = client.get("/metrics", headers=seed.headers(admin))
    assert metrics.status_code == 200
    body = metrics.text

    assert "http_requests_total" in body
    assert "http_request_duration_seconds" in body
    assert "api_errors_total" in body
    assert "scope_denied_total" in body
    assert "sequence_numbers_issued_total" in body

    assert 'path="/health"' in body
    assert 'path="/api/clients/{id}"' in body
    assert 'sequence="ticket"' in body


@pytest.mark.usefixtures("metrics_enabled")
def test_metrics_require_super_admin(client: TestClient, seed: Seed) -> None:
    operations = seed.user(Role.OPERATIONS_EMPLOYEE)

    assert client.get("/metrics").status_code == 401
    assert client.get("/metrics", headers=seed.headers(operations)).status_code == 403


def test_metrics_hidden_when_disabled(client: TestClient, seed: Seed) -> None:
    admin = seed.user(Role.SUPER_ADMIN)

    response = client.get("/metrics", headers=seed.headers(admin))
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
