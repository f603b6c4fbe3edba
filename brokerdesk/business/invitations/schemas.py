from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import EmailStr, Field

from brokerdesk.business.invitations.models import Invitation, InvitationStatus, InvitationType
from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictInput
from brokerdesk.platform.security.roles import Role


class EmployeeInvitationCreate(StrictInput):
    email: EmailStr
    role: Role
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    phone: str | None = Field(default=None, max_length=40)
    position: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    employee_code: str | None = Field(default=None, min_length=1, max_length=20)


class AgentInvitationCreate(StrictInput):
    email: EmailStr
    role: Role
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    phone: str | None = Field(default=None, max_length=40)
    agent_code: str | None = Field(default=None, min_length=1, max_length=20)


class AffiliateInvitationCreate(StrictInput):
    affiliate_id: UUID


class InvitationAccept(StrictInput):
    token: str = Field(min_length=16, max_length=128)


class InvitationRead(ApiModel):
    id: UUID
    email: str
    type: InvitationType
    status: InvitationStatus
    role: Role
    affiliate_id: UUID | None
    entity_data: dict[str, Any]
    expires_at: datetime
    accepted_at: datetime | None
    created_by_id: UUID
    created_at: datetime

    @classmethod
    def fields_from_model(cls, invitation: Invitation) -> dict[str, Any]:
        return {
            "id": invitation.id,
            "email": invitation.email,
            "type": InvitationType(invitation.type),
            "status": InvitationStatus(invitation.status),
            "role": Role(invitation.role.name),
            "affiliate_id": invitation.affiliate_id,
            "entity_data": dict(invitation.entity_data or {}),
            "expires_at": invitation.expires_at,
            "accepted_at": invitation.accepted_at,
            "created_by_id": invitation.created_by_id,
            "created_at": invitation.created_at,
        }

    @classmethod
    def from_model(cls, invitation: Invitation) -> InvitationRead:
        return cls(**cls.fields_from_model(invitation))


class InvitationIssued(InvitationRead):
    """Returned to the inviting broker; carries the token to hand to the invitee."""

    token: str

    @classmethod
    def from_model(cls, invitation: Invitation) -> InvitationIssued:
        return cls(**cls.fields_from_model(invitation), token=invitation.token)


class InvitationListResponse(ApiModel):
    invitations: list[InvitationRead]
    pagination: PageMeta


class InvitationValidation(ApiModel):
    email: str
    type: InvitationType
    role: Role
    expires_at: datetime


class InvitationAccepted(ApiModel):
    user_id: UUID
    email: str
    role: Role
    entity_type: InvitationType
    entity_id: UUID
