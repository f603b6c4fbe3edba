from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictInput, StripPatch, reject_null


class InsurerCreate(StrictInput):
    name: str = Field(min_length=2, max_length=200)
    code: str | None = Field(default=None, min_length=1, max_length=20)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    website: str | None = Field(default=None, max_length=255)
    is_active: bool = True


class InsurerUpdate(StripPatch):
    name: str | None = Field(default=None, min_length=2, max_length=200)
    code: str | None = Field(default=None, min_length=1, max_length=20)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    website: str | None = Field(default=None, max_length=255)
    is_active: bool | None = None

    check_not_null = reject_null("name", "is_active")


class InsurerRead(ApiModel):
    id: UUID
    name: str
    code: str | None
    email: str | None
    phone: str | None
    website: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class InsurerListResponse(ApiModel):
    insurers: list[InsurerRead]
    pagination: PageMeta
