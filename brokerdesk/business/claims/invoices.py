from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from brokerdesk.business.claims.lifecycle import TERMINAL_STATUSES
from brokerdesk.business.claims.models import Claim, ClaimInvoice
from brokerdesk.business.claims.repository import ClaimRepository
from brokerdesk.business.claims.schemas import (
    ClaimInvoiceCreate,
    ClaimInvoiceRead,
    ClaimInvoicesResponse,
    ClaimInvoiceUpdate,
)
from brokerdesk.core.context import RequestContext
from brokerdesk.core.errors import ForbiddenError, NotFoundError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup
from brokerdesk.services.audit import diff_changes, write_audit_log


logger = logging.getLogger("brokerdesk.claims")

CLAIM_INVOICE_RESOURCE = "claim_invoice"
_AUDITED_FIELDS = ("invoice_number", "provider_name", "amount_submitted")


def _snapshot(invoice: ClaimInvoice) -> dict[str, Any]:
    return {name: getattr(invoice, name) for name in _AUDITED_FIELDS}


@dataclass(slots=True)
class ClaimInvoiceService:
    """Provider invoices attached to a claim. Only senior claim managers write them."""

    repository: ClaimRepository = ClaimRepository()

    def list_invoices(self, session: Session, caller: Caller, claim_id: uuid.UUID) -> ClaimInvoicesResponse:
        claim = self.repository.get_scoped(session, caller, claim_id)
        rows = session.scalars(
            select(ClaimInvoice)
            .where(ClaimInvoice.claim_id == claim.id)
            .options(selectinload(ClaimInvoice.created_by))
            .order_by(ClaimInvoice.created_at.asc(), ClaimInvoice.id.asc())
        ).all()
        return ClaimInvoicesResponse(invoices=[ClaimInvoiceRead.from_model(row) for row in rows])

    def add_invoice(
        self,
        session: Session,
        caller: Caller,
        claim_id: uuid.UUID,
        dto: ClaimInvoiceCreate,
        *,
        context: RequestContext | None = None,
    ) -> ClaimInvoiceRead:
        claim = self._open_claim(session, caller, claim_id)
        invoice = ClaimInvoice(claim_id=claim.id, created_by_id=caller.user_id, **dto.model_dump())
        session.add(invoice)
        session.flush()
        self._audit(session, context, caller, claim, invoice, "claim_invoice.added", {"after": _snapshot(invoice)})
        session.commit()
        logger.info(
            "claim_invoice.added",
            extra={"user_id": str(caller.user_id), "resource": "claim", "resource_id": str(claim.id)},
        )
        session.refresh(invoice)
        return ClaimInvoiceRead.from_model(invoice)

    def update_invoice(
        self,
        session: Session,
        caller: Caller,
        claim_id: uuid.UUID,
        invoice_id: uuid.UUID,
        dto: ClaimInvoiceUpdate,
        *,
        context: RequestContext | None = None,
    ) -> ClaimInvoiceRead:
        claim = self._open_claim(session, caller, claim_id)
        invoice = self._load_invoice(session, claim, invoice_id)
        before = _snapshot(invoice)
        for key, value in dto.changes().items():
            setattr(invoice, key, value)
        self._audit(
            session,
            context,
            caller,
            claim,
            invoice,
            "claim_invoice.updated",
            diff_changes(before, _snapshot(invoice)),
        )
        session.commit()
        session.refresh(invoice)
        return ClaimInvoiceRead.from_model(invoice)

    def remove_invoice(
        self,
        session: Session,
        caller: Caller,
        claim_id: uuid.UUID,
        invoice_id: uuid.UUID,
        *,
        context: RequestContext | None = None,
    ) -> ClaimInvoiceRead:
        claim = self._open_claim(session, caller, claim_id)
        invoice = self._load_invoice(session, claim, invoice_id)
        removed = ClaimInvoiceRead.from_model(invoice)
        self._audit(session, context, caller, claim, invoice, "claim_invoice.removed", {"before": _snapshot(invoice)})
        session.delete(invoice)
        session.commit()
        logger.info(
            "claim_invoice.removed",
            extra={"user_id": str(caller.user_id), "resource": "claim", "resource_id": str(claim.id)},
        )
        return removed

    def _open_claim(self, session: Session, caller: Caller, claim_id: uuid.UUID) -> Claim:
        ensure_role(caller, RoleGroup.SENIOR_CLAIM_MANAGERS, resource=CLAIM_INVOICE_RESOURCE)
        claim = self.repository.get_or_404(session, claim_id)
        if claim.status in TERMINAL_STATUSES:
            raise ForbiddenError(f"Invoices cannot be changed on claims in status {claim.status}")
        return claim

    @staticmethod
    def _load_invoice(session: Session, claim: Claim, invoice_id: uuid.UUID) -> ClaimInvoice:
        invoice = session.get(ClaimInvoice, invoice_id, options=[selectinload(ClaimInvoice.created_by)])
        if invoice is None or invoice.claim_id != claim.id:
            raise NotFoundError("Claim invoice not found")
        return invoice

    @staticmethod
    def _audit(
        session: Session,
        context: RequestContext | None,
        caller: Caller,
        claim: Claim,
        invoice: ClaimInvoice,
        action: str,
        changes: dict[str, Any],
    ) -> None:
        write_audit_log(
            session,
            context,
            caller,
            action,
            CLAIM_INVOICE_RESOURCE,
            invoice.id,
            client_id=claim.client_id,
            parent_id=claim.id,
            changes=changes,
            metadata={"claimId": claim.id, "claimNumber": claim.claim_number},
        )


claim_invoice_service = ClaimInvoiceService()
