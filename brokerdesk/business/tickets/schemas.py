from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from brokerdesk.authz.models import User
from brokerdesk.business.tickets.models import Ticket, TicketMessage, TicketPriority, TicketStatus
from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictInput, StripInput, StripPatch, reject_null


def display_name(user: User | None) -> str | None:
    if user is None:
        return None
    return user.name or user.email


class TicketCreate(StripInput):
    subject: str = Field(min_length=3, max_length=200)
    message: str = Field(min_length=1, max_length=5000)
    client_id: UUID
    priority: TicketPriority = TicketPriority.NORMAL
    category: str | None = Field(default=None, max_length=50)
    related_claim_id: UUID | None = None
    assigned_to_id: UUID | None = None


class TicketUpdate(StripPatch):
    subject: str | None = Field(default=None, min_length=3, max_length=200)
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    category: str | None = Field(default=None, max_length=50)

    check_not_null = reject_null("subject", "status", "priority")


class TicketAssign(StrictInput):
    assigned_to_id: UUID


class TicketMessageCreate(StrictInput):
    message: str = Field(min_length=1, max_length=5000)


class TicketMessageRead(ApiModel):
    id: UUID
    ticket_id: UUID
    author_id: UUID
    author_name: str | None
    message: str
    created_at: datetime

    @classmethod
    def from_model(cls, message: TicketMessage) -> TicketMessageRead:
        return cls(
            id=message.id,
            ticket_id=message.ticket_id,
            author_id=message.author_id,
            author_name=display_name(message.author),
            message=message.message,
            created_at=message.created_at,
        )


class TicketRead(ApiModel):
    id: UUID
    ticket_number: str
    subject: str
    status: TicketStatus
    priority: TicketPriority
    category: str | None
    client_id: UUID
    client_name: str
    reporter_id: UUID | None
    reporter_name: str | None
    related_claim_id: UUID | None
    related_claim_number: str | None
    created_by_id: UUID
    created_by_name: str | None
    assigned_to_id: UUID | None
    assigned_to_name: str | None
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def fields_from_model(cls, ticket: Ticket) -> dict[str, object]:
        return {
            "id": ticket.id,
            "ticket_number": ticket.ticket_number,
            "subject": ticket.subject,
            "status": TicketStatus(ticket.status),
            "priority": TicketPriority(ticket.priority),
            "category": ticket.category,
            "client_id": ticket.client_id,
            "client_name": ticket.client.name,
            "reporter_id": ticket.reporter_id,
            "reporter_name": display_name(ticket.reporter),
            "related_claim_id": ticket.related_claim_id,
            "related_claim_number": ticket.related_claim.claim_number if ticket.related_claim is not None else None,
            "created_by_id": ticket.created_by_id,
            "created_by_name": display_name(ticket.created_by),
            "assigned_to_id": ticket.assigned_to_id,
            "assigned_to_name": display_name(ticket.assigned_to),
            "closed_at": ticket.closed_at,
            "created_at": ticket.created_at,
            "updated_at": ticket.updated_at,
        }

    @classmethod
    def from_model(cls, ticket: Ticket) -> TicketRead:
        return cls(**cls.fields_from_model(ticket))


class TicketDetail(TicketRead):
    messages: list[TicketMessageRead]

    @classmethod
    def from_model(cls, ticket: Ticket) -> TicketDetail:
        return cls(
            **cls.fields_from_model(ticket),
            messages=[TicketMessageRead.from_model(item) for item in ticket.messages],
        )


class TicketListResponse(ApiModel):
    tickets: list[TicketRead]
    pagination: PageMeta
