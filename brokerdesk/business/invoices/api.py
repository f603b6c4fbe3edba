from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from brokerdesk.business.invoices.models import InvoiceStatus, PaymentStatus
from brokerdesk.business.invoices.schemas import InvoiceCreate, InvoiceListResponse, InvoiceRead, InvoiceUpdate
from brokerdesk.business.invoices.service import invoice_service
from brokerdesk.core.context import get_request_context
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    client_id: uuid.UUID | None = Query(default=None, alias="clientId"),
    insurer_id: uuid.UUID | None = Query(default=None, alias="insurerId"),
    invoice_status: InvoiceStatus | None = Query(default=None, alias="status"),
    payment_status: PaymentStatus | None = Query(default=None, alias="paymentStatus"),
    search: str | None = Query(default=None, max_length=200),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvoiceListResponse:
    return invoice_service.list_invoices(
        db,
        caller,
        page,
        client_id=client_id,
        insurer_id=insurer_id,
        status=invoice_status,
        payment_status=payment_status,
        search=search,
    )


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(invoice_id: uuid.UUID, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> InvoiceRead:
    return invoice_service.get_invoice(db, caller, invoice_id)


@router.post("", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_invoice(payload: InvoiceCreate, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> InvoiceRead:
    return invoice_service.create_invoice(db, caller, payload)


@router.patch("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    request: Request,
    invoice_id: uuid.UUID,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> InvoiceRead:
    return invoice_service.update_invoice(db, caller, invoice_id, payload, context=get_request_context(request))
