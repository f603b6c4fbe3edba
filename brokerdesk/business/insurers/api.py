from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from brokerdesk.business.insurers.schemas import InsurerCreate, InsurerListResponse, InsurerRead, InsurerUpdate
from brokerdesk.business.insurers.service import insurer_service
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/insurers", tags=["insurers"])


@router.get("", response_model=InsurerListResponse)
def list_insurers(
    search: str | None = Query(default=None, max_length=200),
    is_active: bool | None = Query(default=None, alias="isActive"),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InsurerListResponse:
    return insurer_service.list_insurers(db, caller, page, search=search, is_active=is_active)


@router.get("/{insurer_id}", response_model=InsurerRead)
def get_insurer(insurer_id: uuid.UUID, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> InsurerRead:
    return insurer_service.get_insurer(db, caller, insurer_id)


@router.post("", response_model=InsurerRead, status_code=status.HTTP_201_CREATED)
def create_insurer(payload: InsurerCreate, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> InsurerRead:
    return insurer_service.create_insurer(db, caller, payload)


@router.patch("/{insurer_id}", response_model=InsurerRead)
def update_insurer(
    insurer_id: uuid.UUID,
    payload: InsurerUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InsurerRead:
    return insurer_service.update_insurer(db, caller, insurer_id, payload)
