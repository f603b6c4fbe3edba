from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from brokerdesk.business.tickets.models import TicketPriority, TicketStatus
from brokerdesk.business.tickets.schemas import (
    TicketAssign,
    TicketCreate,
    TicketDetail,
    TicketListResponse,
    TicketMessageCreate,
    TicketMessageRead,
    TicketUpdate,
)
from brokerdesk.business.tickets.service import ticket_service
from brokerdesk.core.context import get_request_context
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.get("", response_model=TicketListResponse)
def list_tickets(
    ticket_status: TicketStatus | None = Query(default=None, alias="status"),
    priority: TicketPriority | None = Query(default=None),
    category: str | None = Query(default=None, max_length=50),
    client_id: uuid.UUID | None = Query(default=None, alias="clientId"),
    search: str | None = Query(default=None, max_length=50),
    assigned_to_id: uuid.UUID | None = Query(default=None, alias="assignedToId"),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TicketListResponse:
    return ticket_service.list_tickets(
        db,
        caller,
        page,
        status=ticket_status,
        priority=priority,
        category=category,
        client_id=client_id,
        search=search,
        assigned_to_id=assigned_to_id,
    )


@router.get("/{ticket_id}", response_model=TicketDetail)
def get_ticket(ticket_id: uuid.UUID, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> TicketDetail:
    return ticket_service.get_ticket(db, caller, ticket_id)


@router.post("", response_model=TicketDetail, status_code=status.HTTP_201_CREATED)
def create_ticket(
    request: Request,
    payload: TicketCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TicketDetail:
    return ticket_service.create_ticket(db, caller, payload, context=get_request_context(request))


@router.patch("/{ticket_id}", response_model=TicketDetail)
def update_ticket(
    request: Request,
    ticket_id: uuid.UUID,
    payload: TicketUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TicketDetail:
    return ticket_service.update_ticket(db, caller, ticket_id, payload, context=get_request_context(request))


@router.patch("/{ticket_id}/assign", response_model=TicketDetail)
def assign_ticket(
    request: Request,
    ticket_id: uuid.UUID,
    payload: TicketAssign,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TicketDetail:
    return ticket_service.assign_ticket(db, caller, ticket_id, payload, context=get_request_context(request))


@router.post("/{ticket_id}/messages", response_model=TicketMessageRead, status_code=status.HTTP_201_CREATED)
def add_ticket_message(
    ticket_id: uuid.UUID,
    payload: TicketMessageCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> TicketMessageRead:
    return ticket_service.add_message(db, caller, ticket_id, payload)
