from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from brokerdesk.business.policies.models import PolicyStatus
from brokerdesk.business.policies.schemas import (
    PolicyAffiliateAdd,
    PolicyAffiliateRead,
    PolicyAffiliatesResponse,
    PolicyCreate,
    PolicyListResponse,
    PolicyRead,
    PolicyUpdate,
)
from brokerdesk.business.policies.service import policy_service
from brokerdesk.core.context import get_request_context
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/policies", tags=["policies"])


@router.get("", response_model=PolicyListResponse)
def list_policies(
    client_id: uuid.UUID | None = Query(default=None, alias="clientId"),
    insurer_id: uuid.UUID | None = Query(default=None, alias="insurerId"),
    policy_status: PolicyStatus | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=200),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> PolicyListResponse:
    return policy_service.list_policies(
        db,
        caller,
        page,
        client_id=client_id,
        insurer_id=insurer_id,
        status=policy_status,
        search=search,
    )


@router.get("/{policy_id}", response_model=PolicyRead)
def get_policy(policy_id: uuid.UUID, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> PolicyRead:
    return policy_service.get_policy(db, caller, policy_id)


@router.post("", response_model=PolicyRead, status_code=status.HTTP_201_CREATED)
def create_policy(payload: PolicyCreate, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> PolicyRead:
    return policy_service.create_policy(db, caller, payload)


@router.patch("/{policy_id}", response_model=PolicyRead)
def update_policy(
    request: Request,
    policy_id: uuid.UUID,
    payload: PolicyUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> PolicyRead:
    return policy_service.update_policy(db, caller, policy_id, payload, context=get_request_context(request))


@router.get("/{policy_id}/affiliates", response_model=PolicyAffiliatesResponse)
def list_policy_affiliates(
    policy_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> PolicyAffiliatesResponse:
    return policy_service.list_policy_affiliates(db, caller, policy_id)


@router.post("/{policy_id}/affiliates", response_model=PolicyAffiliateRead, status_code=status.HTTP_201_CREATED)
def add_policy_affiliate(
    policy_id: uuid.UUID,
    payload: PolicyAffiliateAdd,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> PolicyAffiliateRead:
    return policy_service.add_policy_affiliate(db, caller, policy_id, payload)


@router.delete("/{policy_id}/affiliates/{affiliate_id}", response_model=PolicyAffiliateRead)
def remove_policy_affiliate(
    policy_id: uuid.UUID,
    affiliate_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> PolicyAffiliateRead:
    return policy_service.remove_policy_affiliate(db, caller, policy_id, affiliate_id)
