from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field

from brokerdesk.business.invoices.models import Invoice, InvoiceStatus, PaymentStatus
from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictInput, StripPatch, reject_null


BILLING_PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class InvoiceCreate(StrictInput):
    invoice_number: str = Field(min_length=1, max_length=50)
    insurer_invoice_number: str = Field(min_length=1, max_length=50)
    client_id: UUID
    insurer_id: UUID
    total_amount: Decimal = Field(ge=0)
    tax_amount: Decimal | None = Field(default=None, ge=0)
    billing_period: str | None = Field(default=None, pattern=BILLING_PERIOD_PATTERN)
    issue_date: date
    due_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)


class InvoiceUpdate(StripPatch):
    invoice_number: str | None = Field(default=None, min_length=1, max_length=50)
    insurer_invoice_number: str | None = Field(default=None, min_length=1, max_length=50)
    status: InvoiceStatus | None = None
    payment_status: PaymentStatus | None = None
    payment_date: date | None = None
    total_amount: Decimal | None = Field(default=None, ge=0)
    tax_amount: Decimal | None = Field(default=None, ge=0)
    billing_period: str | None = Field(default=None, pattern=BILLING_PERIOD_PATTERN)
    issue_date: date | None = None
    due_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)

    check_not_null = reject_null(
        "invoice_number", "insurer_invoice_number", "status", "payment_status", "total_amount", "issue_date"
    )


class InvoiceRead(ApiModel):
    id: UUID
    invoice_number: str
    insurer_invoice_number: str
    client_id: UUID
    client_name: str
    insurer_id: UUID
    insurer_name: str
    status: InvoiceStatus
    payment_status: PaymentStatus
    payment_date: date | None
    total_amount: Decimal
    tax_amount: Decimal | None
    billing_period: str | None
    issue_date: date
    due_date: date | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, invoice: Invoice) -> InvoiceRead:
        return cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            insurer_invoice_number=invoice.insurer_invoice_number,
            client_id=invoice.client_id,
            client_name=invoice.client.name,
            insurer_id=invoice.insurer_id,
            insurer_name=invoice.insurer.name,
            status=InvoiceStatus(invoice.status),
            payment_status=PaymentStatus(invoice.payment_status),
            payment_date=invoice.payment_date,
            total_amount=invoice.total_amount,
            tax_amount=invoice.tax_amount,
            billing_period=invoice.billing_period,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            notes=invoice.notes,
            created_at=invoice.created_at,
            updated_at=invoice.updated_at,
        )


class InvoiceListResponse(ApiModel):
    invoices: list[InvoiceRead]
    pagination: PageMeta
