from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from brokerdesk.authz.models import User
from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictInput
from brokerdesk.platform.security.roles import Role


class RoleRead(ApiModel):
    id: UUID
    name: str
    description: str | None


class RoleListResponse(ApiModel):
    roles: list[RoleRead]


class UserRead(ApiModel):
    id: UUID
    email: str
    name: str | None
    role: Role | None
    is_active: bool
    client_ids: list[UUID]
    created_at: datetime

    @classmethod
    def from_model(cls, user: User) -> UserRead:
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=Role(user.role.name) if user.role is not None else None,
            is_active=user.is_active,
            client_ids=sorted((grant.client_id for grant in user.client_access if grant.is_active), key=str),
            created_at=user.created_at,
        )


class UserListResponse(ApiModel):
    users: list[UserRead]
    pagination: PageMeta


class ClientAccessUpdate(StrictInput):
    client_ids: list[UUID] = Field(max_length=500)


class MeRead(ApiModel):
    id: UUID
    email: str
    name: str | None
    role: Role | None
    affiliate_id: UUID | None
    client_ids: list[UUID]
