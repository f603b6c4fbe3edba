from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from brokerdesk.core.config import get_settings
from brokerdesk.middleware.rate_limit import MutationBudget, reset_rate_limiter
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


@pytest.fixture(autouse=True)
def configure_rate_limiter_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "false")
    monkeypatch.setenv("RATE_LIMIT_MUTATIONS_PER_MINUTE", "3")
    get_settings.cache_clear()
    reset_rate_limiter()
    yield
    reset_rate_limiter()
    get_settings.cache_clear()


def test_mutating_endpoints_are_rate_limited(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)

    responses = [
        client.post(
            "/api/clients",
            json={"name": f"Rate Limit Client {index}", "taxId": f"RATE{index:04d}"},
            headers=seed.headers(broker),
        )
        for index in range(5)
    ]

    limited = [response for response in responses if response.status_code == 429]
    assert limited

    first_limited = limited[0]
    body = first_limited.json()
    assert body["code"] == "RATE_LIMITED"
    assert body["message"] == "Too many requests"
    assert body["correlationId"] is not None
    assert first_limited.headers.get("Retry-After") is not None


def test_limits_are_per_caller(client: TestClient, seed: Seed) -> None:
    first = seed.user(Role.ADMIN_EMPLOYEE)
    second = seed.user(Role.ADMIN_EMPLOYEE)

    for index in range(3):
        client.post(
            "/api/clients",
            json={"name": f"First Caller {index}", "taxId": f"FIRST{index:03d}"},
            headers=seed.headers(first),
        )

    response = client.post(
        "/api/clients",
        json={"name": "Second Caller", "taxId": "SECOND001"},
        headers=seed.headers(second),
    )
    assert response.status_code == 201


def test_get_endpoints_are_not_rate_limited(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)

    responses = [client.get("/api/clients", headers=seed.headers(broker)) for _ in range(10)]
    assert all(response.status_code != 429 for response in responses)


def test_idle_buckets_are_dropped() -> None:
    budget = MutationBudget()
    assert budget.spend("user:a", "clients", 3, now=100.0) == 0
    assert budget.spend("user:b", "tickets", 3, now=100.0) == 0
    assert len(budget) == 2

    assert budget.spend("user:c", "claims", 3, now=170.0) == 0
    assert len(budget) == 1


def test_exhausted_bucket_reports_retry_after() -> None:
    budget = MutationBudget()
    for _ in range(3):
        assert budget.spend("user:a", "clients", 3, now=10.0) == 0

    assert budget.spend("user:a", "clients", 3, now=10.0) == 20
    assert budget.spend("user:a", "clients", 3, now=40.0) == 0
