from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from brokerdesk.business.affiliates.models import AffiliateType, CoverageType
from brokerdesk.business.affiliates.schemas import (
    AffiliateCreate,
    AffiliateListResponse,
    AffiliateOwnersResponse,
    AffiliateRead,
    AffiliateUpdate,
)
from brokerdesk.business.affiliates.service import affiliate_service
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/affiliates", tags=["affiliates"])


@router.get("", response_model=AffiliateListResponse)
def list_affiliates(
    client_id: uuid.UUID | None = Query(default=None, alias="clientId"),
    search: str | None = Query(default=None, max_length=200),
    affiliate_type: AffiliateType | None = Query(default=None, alias="affiliateType"),
    coverage_type: CoverageType | None = Query(default=None, alias="coverageType"),
    is_active: bool | None = Query(default=None, alias="isActive"),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AffiliateListResponse:
    return affiliate_service.list_affiliates(
        db,
        caller,
        page,
        client_id=client_id,
        search=search,
        affiliate_type=affiliate_type,
        coverage_type=coverage_type,
        is_active=is_active,
    )


@router.get("/owners", response_model=AffiliateOwnersResponse)
def list_owners(
    client_id: uuid.UUID = Query(alias="clientId"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AffiliateOwnersResponse:
    return affiliate_service.list_owners(db, caller, client_id)


@router.get("/{affiliate_id}", response_model=AffiliateRead)
def get_affiliate(
    affiliate_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AffiliateRead:
    return affiliate_service.get_affiliate(db, caller, affiliate_id)


@router.post("", response_model=AffiliateRead, status_code=status.HTTP_201_CREATED)
def create_affiliate(
    payload: AffiliateCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AffiliateRead:
    return affiliate_service.create_affiliate(db, caller, payload)


@router.patch("/{affiliate_id}", response_model=AffiliateRead)
def update_affiliate(
    affiliate_id: uuid.UUID,
    payload: AffiliateUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AffiliateRead:
    return affiliate_service.update_affiliate(db, caller, affiliate_id, payload)
