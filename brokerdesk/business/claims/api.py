from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from brokerdesk.business.claims.invoices import claim_invoice_service
from brokerdesk.business.claims.models import ClaimStatus
from brokerdesk.business.claims.schemas import (
    AffiliateLookupResponse,
    AvailablePoliciesResponse,
    ClaimAuditLogListResponse,
    ClaimCreate,
    ClaimDateField,
    ClaimInvoiceCreate,
    ClaimInvoiceRead,
    ClaimInvoicesResponse,
    ClaimInvoiceUpdate,
    ClaimListResponse,
    ClaimRead,
    ClaimUpdate,
    ClientLookupResponse,
    PatientsResponse,
)
from brokerdesk.business.claims.service import claim_service
from brokerdesk.core.context import get_request_context
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/claims", tags=["claims"])


@router.get("", response_model=ClaimListResponse)
def list_claims(
    claim_status: ClaimStatus | None = Query(default=None, alias="status"),
    client_id: uuid.UUID | None = Query(default=None, alias="clientId"),
    search: str | None = Query(default=None, max_length=200),
    date_field: ClaimDateField | None = Query(default=None, alias="dateField"),
    date_from: date | None = Query(default=None, alias="dateFrom"),
    date_to: date | None = Query(default=None, alias="dateTo"),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClaimListResponse:
    return claim_service.list_claims(
        db,
        caller,
        page,
        status=claim_status,
        client_id=client_id,
        search=search,
        date_field=date_field,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/lookups/patients", response_model=PatientsResponse)
def list_patients(
    affiliate_id: uuid.UUID = Query(alias="affiliateId"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> PatientsResponse:
    return claim_service.list_patients(db, caller, affiliate_id)


@router.get("/lookups/clients", response_model=ClientLookupResponse)
def list_available_clients(db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> ClientLookupResponse:
    return claim_service.list_available_clients(db, caller)


@router.get("/lookups/affiliates", response_model=AffiliateLookupResponse)
def list_available_affiliates(
    client_id: uuid.UUID = Query(alias="clientId"),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AffiliateLookupResponse:
    return claim_service.list_available_affiliates(db, caller, client_id)


@router.get("/{claim_id}", response_model=ClaimRead)
def get_claim(claim_id: uuid.UUID, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> ClaimRead:
    return claim_service.get_claim(db, caller, claim_id)


@router.post("", response_model=ClaimRead, status_code=status.HTTP_201_CREATED)
def create_claim(
    request: Request,
    payload: ClaimCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClaimRead:
    return claim_service.create_claim(db, caller, payload, context=get_request_context(request))


@router.patch("/{claim_id}", response_model=ClaimRead)
def update_claim(
    request: Request,
    claim_id: uuid.UUID,
    payload: ClaimUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClaimRead:
    return claim_service.update_claim(db, caller, claim_id, payload, context=get_request_context(request))


@router.get("/{claim_id}/available-policies", response_model=AvailablePoliciesResponse)
def list_available_policies(
    claim_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AvailablePoliciesResponse:
    return claim_service.list_available_policies(db, caller, claim_id)


@router.get("/{claim_id}/audit-logs", response_model=ClaimAuditLogListResponse)
def list_claim_audit_logs(
    claim_id: uuid.UUID,
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClaimAuditLogListResponse:
    return claim_service.list_audit_logs(db, caller, claim_id, page)


@router.get("/{claim_id}/invoices", response_model=ClaimInvoicesResponse)
def list_claim_invoices(
    claim_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClaimInvoicesResponse:
    return claim_invoice_service.list_invoices(db, caller, claim_id)


@router.post("/{claim_id}/invoices", response_model=ClaimInvoiceRead, status_code=status.HTTP_201_CREATED)
def add_claim_invoice(
    request: Request,
    claim_id: uuid.UUID,
    payload: ClaimInvoiceCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClaimInvoiceRead:
    return claim_invoice_service.add_invoice(db, caller, claim_id, payload, context=get_request_context(request))


@router.patch("/{claim_id}/invoices/{invoice_id}", response_model=ClaimInvoiceRead)
def update_claim_invoice(
    request: Request,
    claim_id: uuid.UUID,
    invoice_id: uuid.UUID,
    payload: ClaimInvoiceUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClaimInvoiceRead:
    return claim_invoice_service.update_invoice(
        db, caller, claim_id, invoice_id, payload, context=get_request_context(request)
    )


@router.delete("/{claim_id}/invoices/{invoice_id}", response_model=ClaimInvoiceRead)
def remove_claim_invoice(
    request: Request,
    claim_id: uuid.UUID,
    invoice_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> ClaimInvoiceRead:
    return claim_invoice_service.remove_invoice(db, caller, claim_id, invoice_id, context=get_request_context(request))
