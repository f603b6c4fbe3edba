from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from brokerdesk.platform.security.roles import Role
from tests.factories import Seed


def test_roles_list_mirrors_role_set(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.OPERATIONS_EMPLOYEE)

    response = client.get("/api/roles", headers=seed.headers(broker))
    assert response.status_code == 200
    assert sorted(row["name"] for row in response.json()["roles"]) == sorted(role.value for role in Role)


def test_user_listing_filters_by_role(client: TestClient, seed: Seed) -> None:
    broker = seed.user(Role.ADMIN_EMPLOYEE)
    admin = seed.user(Role.CLIENT_ADMIN, email="ca@andes.example")

    response = client.get("/api/users", params={"role": "CLIENT_ADMIN"}, headers=seed.headers(broker))
    assert response.status_code == 200
    assert [row["id"] for row in response.json()["users"]] == [str(admin.id)]

    affiliate = seed.user(Role.AFFILIATE)
    assert client.get("/api/users", headers=seed.headers(affiliate)).status_code == 403


def test_super_admin_replaces_client_access(client: TestClient, seed: Seed) -> None:
    root = seed.user(Role.SUPER_ADMIN)
    first = seed.client()
    second = seed.client()
    admin = seed.user(Role.CLIENT_ADMIN, client_ids=[first.id])

    response = client.put(
        f"/api/users/{admin.id}/client-access",
        json={"clientIds": [str(second.id)]},
        headers=seed.headers(root),
    )
    assert response.status_code == 200
    assert response.json()["clientIds"] == [str(second.id)]

    me = client.get("/api/me", headers=seed.headers(admin))
    assert me.json()["clientIds"] == [str(second.id)]
    assert client.get(f"/api/clients/{first.id}", headers=seed.headers(admin)).status_code == 404
    assert client.get(f"/api/clients/{second.id}", headers=seed.headers(admin)).status_code == 200


def test_client_access_validation(client: TestClient, seed: Seed) -> None:
    root = seed.user(Role.SUPER_ADMIN)
    operations = seed.user(Role.OPERATIONS_EMPLOYEE)
    admin = seed.user(Role.CLIENT_ADMIN)

    unknown = client.put(
        f"/api/users/{admin.id}/client-access",
        json={"clientIds": [str(uuid.uuid4())]},
        headers=seed.headers(root),
    )
    assert unknown.status_code == 400
    assert unknown.json()["details"][0]["field"] == "clientIds"

    wrong_role = client.put(
        f"/api/users/{operations.id}/client-access",
        json={"clientIds": []},
        headers=seed.headers(root),
    )
    assert wrong_role.status_code == 400

    not_root = client.put(
        f"/api/users/{admin.id}/client-access",
        json={"clientIds": []},
        headers=seed.headers(operations),
    )
    assert not_root.status_code == 403


def test_deactivation(client: TestClient, seed: Seed) -> None:
    root = seed.user(Role.SUPER_ADMIN)
    target = seed.user(Role.CLAIMS_EMPLOYEE)

    self_service = client.patch(f"/api/users/{root.id}/deactivate", headers=seed.headers(root))
    assert self_service.status_code == 400

    response = client.patch(f"/api/users/{target.id}/deactivate", headers=seed.headers(root))
    assert response.status_code == 200
    assert response.json()["isActive"] is False

    assert client.get("/api/me", headers=seed.headers(target)).status_code == 401
