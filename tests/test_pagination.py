from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from brokerdesk.business.clients.models import Client
from brokerdesk.core.errors import ValidationFailedError
from brokerdesk.platform.pagination import PageMeta, PageRequest, clamp_limit
from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


def _bulk_clients(session: Session, count: int) -> None:
    session.add_all(Client(name=f"Bulk Client {i:02d}", tax_id=f"BULK{i:04d}") for i in range(count))
    session.commit()


def test_page_meta_for_middle_page() -> None:
    meta = PageMeta.compute(45, PageRequest.build(2, 20))
    assert meta.model_dump(by_alias=True) == {
        "total": 45,
        "page": 2,
        "limit": 20,
        "totalPages": 3,
        "hasMore": True,
    }


def test_page_meta_last_page_and_empty_result() -> None:
    last = PageMeta.compute(45, PageRequest.build(3, 20))
    assert last.total_pages == 3
    assert last.has_more is False

    empty = PageMeta.compute(0, PageRequest.build())
    assert empty.total_pages == 0
    assert empty.has_more is False
    assert empty.page == 1
    assert empty.limit == 20


@pytest.mark.parametrize(("raw", "expected"), [(None, 20), (0, 1), (-5, 1), (50, 50), (500, 100)])
def test_limit_is_clamped(raw: int | None, expected: int) -> None:
    assert clamp_limit(raw) == expected


def test_page_below_one_is_rejected() -> None:
    with pytest.raises(ValidationFailedError):
        PageRequest.build(0, 20)


def test_list_endpoint_returns_requested_window(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)
    _bulk_clients(db_session, 45)

    response = client.get("/api/clients", params={"page": 2, "limit": 20}, headers=seed.headers(broker))
    assert response.status_code == 200
    body = response.json()
    assert len(body["clients"]) == 20
    assert body["pagination"] == {"total": 45, "page": 2, "limit": 20, "totalPages": 3, "hasMore": True}


def test_list_endpoint_clamps_oversized_limit(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)
    _bulk_clients(db_session, 3)

    response = client.get("/api/clients", params={"limit": 1000}, headers=seed.headers(broker))
    assert response.status_code == 200
    assert response.json()["pagination"]["limit"] == 100


def test_list_endpoint_rejects_page_zero(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.SUPER_ADMIN)

    response = client.get("/api/clients", params={"page": 0}, headers=seed.headers(broker))
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_FAILED"


def test_count_follows_search_filter(client: TestClient, db_session: Session, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)
    _bulk_clients(db_session, 12)

    response = client.get("/api/clients", params={"search": "Client 1", "limit": 5}, headers=seed.headers(broker))
    assert response.status_code == 200
    body = response.json()
    # only "Bulk Client 10" and "Bulk Client 11" match
    assert body["pagination"]["total"] == 2
    assert len(body["clients"]) == 2
