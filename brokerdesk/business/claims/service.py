from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.orm import Session, aliased, selectinload

from brokerdesk.authz.models import User
from brokerdesk.business.affiliates.models import Affiliate, AffiliateType
from brokerdesk.business.claims.invoices import CLAIM_INVOICE_RESOURCE
from brokerdesk.business.claims.lifecycle import check_claim_update
from brokerdesk.business.claims.models import Claim, ClaimStatus
from brokerdesk.business.claims.repository import ClaimRepository
from brokerdesk.business.claims.schemas import (
    AffiliateLookupRead,
    AffiliateLookupResponse,
    AvailablePoliciesResponse,
    AvailablePolicyRead,
    ClaimAuditLogListResponse,
    ClaimAuditLogRead,
    ClaimCreate,
    ClaimDateField,
    ClaimListResponse,
    ClaimRead,
    ClaimUpdate,
    ClientLookupRead,
    ClientLookupResponse,
    PatientRead,
    PatientsResponse,
)
from brokerdesk.business.clients.models import Client
from brokerdesk.business.policies.models import Policy, PolicyAffiliate, PolicyStatus
from brokerdesk.core.context import RequestContext
from brokerdesk.core.errors import NotFoundError, ValidationFailedError
from brokerdesk.models.audit import AuditLog
from brokerdesk.otel import get_tracer
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.numbering import CLAIM_SEQUENCE, claim_codec, next_sequence_value
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import Role
from brokerdesk.platform.security.scope import (
    ScopeDecision,
    check_client_filter,
    client_scope_clause,
    ensure_allowed,
    resolve_affiliate_scope,
    resolve_client_scope,
)
from brokerdesk.services.audit import diff_changes, write_audit_log


logger = logging.getLogger("brokerdesk.claims")
tracer = get_tracer("brokerdesk.claims")

_UNIQUE_FIELDS = {"claim_number": "claimNumber", "claim_sequence": "claimNumber"}
_LOAD_OPTIONS = (
    selectinload(Claim.client),
    selectinload(Claim.affiliate),
    selectinload(Claim.patient),
    selectinload(Claim.policy),
    selectinload(Claim.created_by),
)
_DATE_COLUMNS = {
    ClaimDateField.INCIDENT_DATE: Claim.incident_date,
    ClaimDateField.SUBMITTED_DATE: Claim.submitted_date,
    ClaimDateField.SETTLEMENT_DATE: Claim.settlement_date,
}
_AUDITED_FIELDS = (
    "status",
    "policy_id",
    "care_type",
    "description",
    "diagnosis_code",
    "diagnosis_description",
    "amount_submitted",
    "amount_approved",
    "amount_denied",
    "amount_unprocessed",
    "deductible_applied",
    "copay_applied",
    "incident_date",
    "submitted_date",
    "settlement_date",
    "settlement_number",
    "settlement_notes",
    "business_days",
    "reprocess_date",
    "reprocess_description",
)


def _snapshot(claim: Claim) -> dict[str, Any]:
    return {name: getattr(claim, name) for name in _AUDITED_FIELDS}


@dataclass(slots=True)
class ClaimService:
    repository: ClaimRepository = ClaimRepository()

    def list_claims(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        status: ClaimStatus | None = None,
        client_id: uuid.UUID | None = None,
        search: str | None = None,
        date_field: ClaimDateField | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> ClaimListResponse:
        if date_from is not None and date_to is not None and date_from > date_to:
            raise ValidationFailedError.for_field("dateTo", "dateTo must be on or after dateFrom")

        stmt: Select[tuple[Claim]] = self.repository.apply_scope_query(select(Claim).options(*_LOAD_OPTIONS), caller)
        client_id = check_client_filter(caller, client_id, resource=self.repository.resource)
        if client_id is not None:
            stmt = stmt.where(Claim.client_id == client_id)
        if status is not None:
            stmt = stmt.where(Claim.status == status)
        if search:
            affiliate = aliased(Affiliate)
            patient = aliased(Affiliate)
            pattern = f"%{search.strip()}%"
            stmt = (
                stmt.join(affiliate, affiliate.id == Claim.affiliate_id)
                .join(patient, patient.id == Claim.patient_id)
                .where(
                    or_(
                        Claim.claim_number.ilike(pattern),
                        affiliate.first_name.ilike(pattern),
                        affiliate.last_name.ilike(pattern),
                        patient.first_name.ilike(pattern),
                        patient.last_name.ilike(pattern),
                    )
                )
            )
        if date_from is not None or date_to is not None:
            column = _DATE_COLUMNS[date_field or ClaimDateField.SUBMITTED_DATE]
            if date_from is not None:
                stmt = stmt.where(column >= date_from)
            if date_to is not None:
                stmt = stmt.where(column <= date_to)

        rows, meta = paginate(session, stmt, page, [Claim.created_at.desc()], tie_breaker=Claim.id)
        return ClaimListResponse(claims=[ClaimRead.from_model(row) for row in rows], pagination=meta)

    def get_claim(self, session: Session, caller: Caller, claim_id: uuid.UUID) -> ClaimRead:
        claim = self.repository.get_scoped(session, caller, claim_id, options=_LOAD_OPTIONS)
        return ClaimRead.from_model(claim)

    def create_claim(
        self,
        session: Session,
        caller: Caller,
        dto: ClaimCreate,
        *,
        context: RequestContext | None = None,
    ) -> ClaimRead:
        if caller.role is Role.AFFILIATE:
            if caller.affiliate_id is None or dto.affiliate_id != caller.affiliate_id:
                ensure_allowed(
                    ScopeDecision.OUT_OF_SCOPE,
                    caller,
                    resource="affiliate",
                    resource_id=dto.affiliate_id,
                    not_found_message="Affiliate not found",
                )
        else:
            ensure_allowed(
                resolve_client_scope(caller, dto.client_id, affiliate_allowed=False),
                caller,
                resource="client",
                resource_id=dto.client_id,
                not_found_message="Client not found",
            )

        affiliate = session.get(Affiliate, dto.affiliate_id)
        if affiliate is None or not affiliate.is_active or affiliate.client_id != dto.client_id:
            raise ValidationFailedError.for_field("affiliateId", "Affiliate must be active and belong to the client")

        patient = affiliate if dto.patient_id == affiliate.id else session.get(Affiliate, dto.patient_id)
        if (
            patient is None
            or not patient.is_active
            or patient.client_id != dto.client_id
            or (patient.id != affiliate.id and patient.primary_affiliate_id != affiliate.id)
        ):
            raise ValidationFailedError.for_field(
                "patientId", "Patient must be the affiliate or one of its active dependents"
            )
        self._check_policy(session, dto.policy_id, dto.client_id)

        sequence = next_sequence_value(session, CLAIM_SEQUENCE)
        claim = Claim(
            **dto.model_dump(),
            claim_sequence=sequence,
            claim_number=claim_codec().encode(sequence),
            status=ClaimStatus.SUBMITTED,
            created_by_id=caller.user_id,
        )
        session.add(claim)
        session.flush()
        write_audit_log(
            session,
            context,
            caller,
            "claim.created",
            "claim",
            claim.id,
            client_id=claim.client_id,
            changes={"after": _snapshot(claim)},
            metadata={"claimNumber": claim.claim_number},
        )
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Claim")
        logger.info(
            "claim.created",
            extra={"user_id": str(caller.user_id), "resource": "claim", "resource_id": str(claim.id)},
        )
        return self.get_claim(session, caller, claim.id)

    def update_claim(
        self,
        session: Session,
        caller: Caller,
        claim_id: uuid.UUID,
        dto: ClaimUpdate,
        *,
        context: RequestContext | None = None,
    ) -> ClaimRead:
        claim = self.repository.get_scoped(session, caller, claim_id)
        changes = dto.changes()
        before = _snapshot(claim)
        merged = {**before, **changes}
        current = ClaimStatus(claim.status)
        target = check_claim_update(current, caller.role, changes, merged)
        if "policy_id" in changes:
            self._check_policy(session, changes["policy_id"], claim.client_id)

        with tracer.start_as_current_span("claim.update") as span:
            span.set_attribute("claim_id", str(claim.id))
            span.set_attribute("from_status", str(current))
            span.set_attribute("to_status", str(target or current))
            if context is not None and context.correlation_id:
                span.set_attribute("correlation_id", context.correlation_id)

            self.repository.apply_changes(claim, changes)
            after = _snapshot(claim)
            write_audit_log(
                session,
                context,
                caller,
                "claim.status_changed" if target is not None else "claim.updated",
                "claim",
                claim.id,
                client_id=claim.client_id,
                changes=diff_changes(before, after),
                metadata={"fromStatus": current, "toStatus": target or current},
            )
            commit_or_conflict(session, _UNIQUE_FIELDS, resource="Claim")
        logger.info(
            "claim.updated",
            extra={
                "user_id": str(caller.user_id),
                "role": caller.role,
                "resource": "claim",
                "resource_id": str(claim.id),
                "action": f"{current}->{target}" if target is not None else "edit",
            },
        )
        return self.get_claim(session, caller, claim.id)

    def list_patients(self, session: Session, caller: Caller, affiliate_id: uuid.UUID) -> PatientsResponse:
        if caller.role is Role.AFFILIATE and affiliate_id != caller.affiliate_id:
            ensure_allowed(
                ScopeDecision.OUT_OF_SCOPE,
                caller,
                resource="affiliate",
                resource_id=affiliate_id,
                not_found_message="Affiliate not found",
            )

        affiliate = session.get(Affiliate, affiliate_id)
        if affiliate is None:
            raise NotFoundError("Affiliate not found")
        if caller.role is not Role.AFFILIATE:
            ensure_allowed(
                resolve_affiliate_scope(
                    caller,
                    affiliate_id=affiliate.id,
                    client_id=affiliate.client_id,
                    primary_affiliate_id=affiliate.primary_affiliate_id,
                ),
                caller,
                resource="affiliate",
                resource_id=affiliate.id,
                not_found_message="Affiliate not found",
            )

        dependents = session.scalars(
            select(Affiliate)
            .where(Affiliate.primary_affiliate_id == affiliate.id, Affiliate.is_active.is_(True))
            .order_by(Affiliate.last_name.asc(), Affiliate.first_name.asc(), Affiliate.id.asc())
        ).all()
        return PatientsResponse(patients=[PatientRead.from_model(item) for item in [affiliate, *dependents]])

    def list_audit_logs(
        self,
        session: Session,
        caller: Caller,
        claim_id: uuid.UUID,
        page: PageRequest,
    ) -> ClaimAuditLogListResponse:
        """History of a claim and of the invoices attached to it, newest first."""

        claim = self.repository.get_scoped(session, caller, claim_id)
        claim_key = str(claim.id)
        stmt: Select[tuple[AuditLog]] = select(AuditLog).where(
            or_(
                and_(AuditLog.resource_type == "claim", AuditLog.resource_id == claim_key),
                and_(AuditLog.resource_type == CLAIM_INVOICE_RESOURCE, AuditLog.parent_id == claim_key),
            )
        )
        rows, meta = paginate(session, stmt, page, [AuditLog.created_at.desc()], tie_breaker=AuditLog.id)
        user_ids = {row.user_id for row in rows if row.user_id is not None}
        users = {user.id: user for user in session.scalars(select(User).where(User.id.in_(user_ids)))} if user_ids else {}
        return ClaimAuditLogListResponse(
            audit_logs=[ClaimAuditLogRead.from_row(row, users.get(row.user_id)) for row in rows],
            pagination=meta,
        )

    def list_available_clients(self, session: Session, caller: Caller) -> ClientLookupResponse:
        stmt = select(Client).where(Client.is_active.is_(True))
        if caller.role is Role.AFFILIATE:
            if caller.affiliate_client_id is None:
                return ClientLookupResponse(clients=[])
            stmt = stmt.where(Client.id == caller.affiliate_client_id)
        else:
            clause = client_scope_clause(caller, Client.id, resource="client", affiliate_allowed=False)
            if clause is not None:
                stmt = stmt.where(clause)
        rows = session.scalars(stmt.order_by(Client.name.asc(), Client.id.asc())).all()
        return ClientLookupResponse(clients=[ClientLookupRead.model_validate(row) for row in rows])

    def list_available_affiliates(
        self,
        session: Session,
        caller: Caller,
        client_id: uuid.UUID,
    ) -> AffiliateLookupResponse:
        """Owners a claim may be filed for; an affiliate only ever sees itself."""

        if caller.role is Role.AFFILIATE:
            ensure_allowed(
                resolve_client_scope(caller, client_id),
                caller,
                resource="client",
                resource_id=client_id,
                not_found_message="Client not found",
            )
            affiliate = session.get(Affiliate, caller.affiliate_id) if caller.affiliate_id is not None else None
            if affiliate is None or not affiliate.is_active:
                return AffiliateLookupResponse(affiliates=[])
            return AffiliateLookupResponse(affiliates=[AffiliateLookupRead.model_validate(affiliate)])

        ensure_allowed(
            resolve_client_scope(caller, client_id, affiliate_allowed=False),
            caller,
            resource="client",
            resource_id=client_id,
            not_found_message="Client not found",
        )
        client = session.get(Client, client_id)
        if client is None:
            raise NotFoundError("Client not found")
        if not client.is_active:
            raise ValidationFailedError.for_field("clientId", "Client is inactive")

        rows = session.scalars(
            select(Affiliate)
            .where(
                Affiliate.client_id == client.id,
                Affiliate.affiliate_type == AffiliateType.OWNER,
                Affiliate.is_active.is_(True),
            )
            .order_by(Affiliate.last_name.asc(), Affiliate.first_name.asc(), Affiliate.id.asc())
        ).all()
        return AffiliateLookupResponse(affiliates=[AffiliateLookupRead.model_validate(row) for row in rows])

    def list_available_policies(
        self,
        session: Session,
        caller: Caller,
        claim_id: uuid.UUID,
        *,
        today: date | None = None,
    ) -> AvailablePoliciesResponse:
        """Active, unexpired policies of the claim's client that cover the claim's affiliate."""

        claim = self.repository.get_scoped(session, caller, claim_id)
        today = today or date.today()
        rows = session.scalars(
            select(Policy)
            .join(PolicyAffiliate, PolicyAffiliate.policy_id == Policy.id)
            .where(
                Policy.client_id == claim.client_id,
                Policy.status == PolicyStatus.ACTIVE,
                Policy.is_active.is_(True),
                Policy.end_date >= today,
                PolicyAffiliate.affiliate_id == claim.affiliate_id,
                PolicyAffiliate.is_active.is_(True),
            )
            .options(selectinload(Policy.insurer))
            .order_by(Policy.policy_number.asc())
        ).all()
        return AvailablePoliciesResponse(policies=[AvailablePolicyRead.from_model(row) for row in rows])

    @staticmethod
    def _check_policy(session: Session, policy_id: uuid.UUID | None, client_id: uuid.UUID) -> None:
        if policy_id is None:
            return
        policy = session.get(Policy, policy_id)
        if policy is None or policy.client_id != client_id:
            raise ValidationFailedError.for_field("policyId", "Policy must belong to the claim's client")


claim_service = ClaimService()
