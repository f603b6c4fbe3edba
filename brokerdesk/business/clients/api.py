from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from brokerdesk.business.clients.schemas import ClientCreate, ClientListResponse, ClientRead, ClientUpdate
from brokerdesk.business.clients.service import client_service
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=ClientListResponse)
def list_clients(
    search: str | None = Query(default=None, max_length=200),
    is_active: bool | None = Query(default=None, alias="isActive"),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClientListResponse:
    return client_service.list_clients(db, caller, page, search=search, is_active=is_active)


@router.get("/{client_id}", response_model=ClientRead)
def get_client(
    client_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClientRead:
    return client_service.get_client(db, caller, client_id)


@router.post("", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClientRead:
    return client_service.create_client(db, caller, payload)


@router.patch("/{client_id}", response_model=ClientRead)
def update_client(
    client_id: uuid.UUID,
    payload: ClientUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClientRead:
    return client_service.update_client(db, caller, client_id, payload)
