from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session, selectinload

from brokerdesk.business.clients.models import Client
from brokerdesk.business.insurers.models import Insurer
from brokerdesk.business.invoices.lifecycle import INVOICE_LIFECYCLE
from brokerdesk.business.invoices.models import Invoice, InvoiceStatus, PaymentStatus
from brokerdesk.business.invoices.repository import InvoiceRepository
from brokerdesk.business.invoices.schemas import InvoiceCreate, InvoiceListResponse, InvoiceRead, InvoiceUpdate
from brokerdesk.core.context import RequestContext
from brokerdesk.core.errors import ValidationFailedError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup
from brokerdesk.platform.security.scope import check_client_filter
from brokerdesk.services.audit import diff_changes, write_audit_log


logger = logging.getLogger("brokerdesk.invoices")

_UNIQUE_FIELDS = {"uq_invoice_insurer_number": "insurerInvoiceNumber", "insurer_invoice_number": "insurerInvoiceNumber"}
_LOAD_OPTIONS = (selectinload(Invoice.client), selectinload(Invoice.insurer))
_AUDITED_FIELDS = (
    "status",
    "payment_status",
    "payment_date",
    "invoice_number",
    "insurer_invoice_number",
    "billing_period",
    "total_amount",
    "tax_amount",
    "issue_date",
    "due_date",
    "notes",
)


def _check_due_date(issue_date: date, due_date: date | None) -> None:
    if due_date is not None and due_date < issue_date:
        raise ValidationFailedError.for_field("dueDate", "Due date cannot be before issue date")


def _snapshot(invoice: Invoice) -> dict[str, Any]:
    return {name: getattr(invoice, name) for name in _AUDITED_FIELDS}


@dataclass(slots=True)
class InvoiceService:
    repository: InvoiceRepository = InvoiceRepository()

    def list_invoices(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        client_id: uuid.UUID | None = None,
        insurer_id: uuid.UUID | None = None,
        status: InvoiceStatus | None = None,
        payment_status: PaymentStatus | None = None,
        search: str | None = None,
    ) -> InvoiceListResponse:
        stmt: Select[tuple[Invoice]] = self.repository.apply_scope_query(
            select(Invoice).options(*_LOAD_OPTIONS), caller
        )
        client_id = check_client_filter(caller, client_id, resource=self.repository.resource, affiliate_allowed=False)
        if client_id is not None:
            stmt = stmt.where(Invoice.client_id == client_id)
        if insurer_id is not None:
            stmt = stmt.where(Invoice.insurer_id == insurer_id)
        if status is not None:
            stmt = stmt.where(Invoice.status == status)
        if payment_status is not None:
            stmt = stmt.where(Invoice.payment_status == payment_status)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(Invoice.invoice_number.ilike(pattern), Invoice.insurer_invoice_number.ilike(pattern)))

        rows, meta = paginate(session, stmt, page, [Invoice.issue_date.desc()], tie_breaker=Invoice.id)
        return InvoiceListResponse(invoices=[InvoiceRead.from_model(row) for row in rows], pagination=meta)

    def get_invoice(self, session: Session, caller: Caller, invoice_id: uuid.UUID) -> InvoiceRead:
        invoice = self.repository.get_scoped(session, caller, invoice_id, options=_LOAD_OPTIONS)
        return InvoiceRead.from_model(invoice)

    def create_invoice(self, session: Session, caller: Caller, dto: InvoiceCreate) -> InvoiceRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        violations: list[dict[str, str]] = []
        if session.get(Client, dto.client_id) is None:
            violations.append({"field": "clientId", "message": "Client does not exist"})
        if session.get(Insurer, dto.insurer_id) is None:
            violations.append({"field": "insurerId", "message": "Insurer does not exist"})
        if violations:
            raise ValidationFailedError("Invoice validation failed", details=violations)
        _check_due_date(dto.issue_date, dto.due_date)

        invoice = Invoice(
            **dto.model_dump(),
            status=InvoiceStatus.PENDING,
            payment_status=PaymentStatus.PENDING_PAYMENT,
        )
        session.add(invoice)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Invoice")
        logger.info(
            "invoice.created",
            extra={"user_id": str(caller.user_id), "resource": "invoice", "resource_id": str(invoice.id)},
        )
        return self.get_invoice(session, caller, invoice.id)

    def update_invoice(
        self,
        session: Session,
        caller: Caller,
        invoice_id: uuid.UUID,
        dto: InvoiceUpdate,
        *,
        context: RequestContext | None = None,
    ) -> InvoiceRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        invoice = self.repository.get_or_404(session, invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED:
            raise ValidationFailedError.for_field("status", "Cancelled invoices cannot be modified")

        changes = dto.changes()
        before = _snapshot(invoice)
        current = InvoiceStatus(invoice.status)
        target = INVOICE_LIFECYCLE.check_update(current, caller.role, changes, {**before, **changes})
        _check_due_date(changes.get("issue_date", invoice.issue_date), changes.get("due_date", invoice.due_date))

        self.repository.apply_changes(invoice, changes)
        write_audit_log(
            session,
            context,
            caller,
            "invoice.status_changed" if target is not None else "invoice.updated",
            "invoice",
            invoice.id,
            client_id=invoice.client_id,
            changes=diff_changes(before, _snapshot(invoice)),
            metadata={"fromStatus": current, "toStatus": target or current},
        )
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Invoice")
        if target is not None:
            logger.info(
                "invoice.status_changed",
                extra={
                    "user_id": str(caller.user_id),
                    "resource": "invoice",
                    "resource_id": str(invoice.id),
                    "action": f"{current}->{target}",
                },
            )
        return self.get_invoice(session, caller, invoice.id)


invoice_service = InvoiceService()
