from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictInput, StripPatch, reject_null


class ClientCreate(StrictInput):
    name: str = Field(min_length=2, max_length=200)
    tax_id: str = Field(min_length=1, max_length=20)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = Field(default=None, max_length=500)
    is_active: bool = True


class ClientUpdate(StripPatch):
    name: str | None = Field(default=None, min_length=2, max_length=200)
    tax_id: str | None = Field(default=None, min_length=1, max_length=20)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None

    check_not_null = reject_null("name", "tax_id", "is_active")


class ClientRead(ApiModel):
    id: UUID
    name: str
    tax_id: str
    email: str | None
    phone: str | None
    address: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ClientListResponse(ApiModel):
    clients: list[ClientRead]
    pagination: PageMeta
