from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictPatch, reject_null


class AgentUpdate(StrictPatch):
    first_name: str | None = Field(default=None, min_length=2, max_length=100)
    last_name: str | None = Field(default=None, min_length=2, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    agent_code: str | None = Field(default=None, min_length=1, max_length=20)
    is_active: bool | None = None

    check_not_null = reject_null("first_name", "last_name", "email", "is_active")


class AgentRead(ApiModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None
    agent_code: str | None
    user_id: UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class AgentListResponse(ApiModel):
    agents: list[AgentRead]
    pagination: PageMeta
