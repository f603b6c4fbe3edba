from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from brokerdesk.business.invitations.models import InvitationStatus, InvitationType
from brokerdesk.business.invitations.schemas import (
    AffiliateInvitationCreate,
    AgentInvitationCreate,
    EmployeeInvitationCreate,
    InvitationAccept,
    InvitationAccepted,
    InvitationIssued,
    InvitationListResponse,
    InvitationRead,
    InvitationValidation,
)
from brokerdesk.business.invitations.service import invitation_service
from brokerdesk.core.context import get_request_context
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get("", response_model=InvitationListResponse)
def list_invitations(
    invitation_status: InvitationStatus | None = Query(default=None, alias="status"),
    invitation_type: InvitationType | None = Query(default=None, alias="type"),
    search: str | None = Query(default=None, max_length=200),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvitationListResponse:
    return invitation_service.list_invitations(
        db, caller, page, status=invitation_status, invitation_type=invitation_type, search=search
    )


@router.get("/validate/{token}", response_model=InvitationValidation)
def validate_invitation(
    token: str = Path(min_length=16, max_length=128),
    db: Session = Depends(get_db),
) -> InvitationValidation:
    return invitation_service.validate_token(db, token)


@router.post("/accept", response_model=InvitationAccepted)
def accept_invitation(
    request: Request,
    payload: InvitationAccept,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvitationAccepted:
    return invitation_service.accept(db, caller, payload, context=get_request_context(request))


@router.post("/employees", response_model=InvitationIssued, status_code=status.HTTP_201_CREATED)
def invite_employee(
    request: Request,
    payload: EmployeeInvitationCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvitationIssued:
    return invitation_service.invite_employee(db, caller, payload, context=get_request_context(request))


@router.post("/agents", response_model=InvitationIssued, status_code=status.HTTP_201_CREATED)
def invite_agent(
    request: Request,
    payload: AgentInvitationCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvitationIssued:
    return invitation_service.invite_agent(db, caller, payload, context=get_request_context(request))


@router.post("/affiliates", response_model=InvitationIssued, status_code=status.HTTP_201_CREATED)
def invite_affiliate(
    request: Request,
    payload: AffiliateInvitationCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvitationIssued:
    return invitation_service.invite_affiliate(db, caller, payload, context=get_request_context(request))


@router.post("/{invitation_id}/revoke", response_model=InvitationRead)
def revoke_invitation(
    request: Request,
    invitation_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvitationRead:
    return invitation_service.revoke(db, caller, invitation_id, context=get_request_context(request))


@router.post("/{invitation_id}/resend", response_model=InvitationIssued)
def resend_invitation(
    request: Request,
    invitation_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvitationIssued:
    return invitation_service.resend(db, caller, invitation_id, context=get_request_context(request))
