from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from brokerdesk.business.affiliates.models import Affiliate
from brokerdesk.business.clients.models import Client
from brokerdesk.business.insurers.models import Insurer
from brokerdesk.business.policies.lifecycle import EDITABLE_FIELDS, POLICY_LIFECYCLE
from brokerdesk.business.policies.models import Policy, PolicyAffiliate, PolicyStatus
from brokerdesk.business.policies.repository import PolicyRepository
from brokerdesk.business.policies.schemas import (
    PolicyAffiliateAdd,
    PolicyAffiliateRead,
    PolicyAffiliatesResponse,
    PolicyCreate,
    PolicyListResponse,
    PolicyRead,
    PolicyUpdate,
)
from brokerdesk.core.context import RequestContext
from brokerdesk.core.database import utcnow
from brokerdesk.core.errors import ConflictError, NotFoundError, ValidationFailedError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup
from brokerdesk.platform.security.scope import check_client_filter
from brokerdesk.services.audit import diff_changes, write_audit_log


logger = logging.getLogger("brokerdesk.policies")

_UNIQUE_FIELDS = {
    "policy_number": "policyNumber",
    "uq_policy_affiliate_pair": "affiliateId",
    "policy_affiliate.affiliate_id": "affiliateId",
}
_LOAD_OPTIONS = (selectinload(Policy.client), selectinload(Policy.insurer))
_AUDITED_FIELDS = ("status", *sorted(EDITABLE_FIELDS))


def _check_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ValidationFailedError.for_field("endDate", "End date must be after start date")


def _snapshot(policy: Policy) -> dict[str, Any]:
    return {name: getattr(policy, name) for name in _AUDITED_FIELDS}


@dataclass(slots=True)
class PolicyService:
    repository: PolicyRepository = PolicyRepository()

    def list_policies(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        client_id: uuid.UUID | None = None,
        insurer_id: uuid.UUID | None = None,
        status: PolicyStatus | None = None,
        search: str | None = None,
    ) -> PolicyListResponse:
        stmt: Select[tuple[Policy]] = self.repository.apply_scope_query(
            select(Policy).options(*_LOAD_OPTIONS), caller
        )
        client_id = check_client_filter(caller, client_id, resource=self.repository.resource, affiliate_allowed=False)
        if client_id is not None:
            stmt = stmt.where(Policy.client_id == client_id)
        if insurer_id is not None:
            stmt = stmt.where(Policy.insurer_id == insurer_id)
        if status is not None:
            stmt = stmt.where(Policy.status == status)
        if search:
            stmt = stmt.where(Policy.policy_number.ilike(f"%{search.strip()}%"))

        rows, meta = paginate(session, stmt, page, [Policy.created_at.desc()], tie_breaker=Policy.id)
        return PolicyListResponse(policies=[PolicyRead.from_model(row) for row in rows], pagination=meta)

    def get_policy(self, session: Session, caller: Caller, policy_id: uuid.UUID) -> PolicyRead:
        policy = self.repository.get_scoped(session, caller, policy_id, options=_LOAD_OPTIONS)
        return PolicyRead.from_model(policy)

    def create_policy(self, session: Session, caller: Caller, dto: PolicyCreate) -> PolicyRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        violations: list[dict[str, str]] = []
        client = session.get(Client, dto.client_id)
        if client is None or not client.is_active:
            violations.append({"field": "clientId", "message": "Client does not exist or is inactive"})
        insurer = session.get(Insurer, dto.insurer_id)
        if insurer is None or not insurer.is_active:
            violations.append({"field": "insurerId", "message": "Insurer does not exist or is inactive"})
        if violations:
            raise ValidationFailedError("Policy validation failed", details=violations)
        _check_dates(dto.start_date, dto.end_date)

        policy = Policy(**dto.model_dump(), status=PolicyStatus.PENDING)
        session.add(policy)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Policy")
        logger.info(
            "policy.created",
            extra={"user_id": str(caller.user_id), "resource": "policy", "resource_id": str(policy.id)},
        )
        return self.get_policy(session, caller, policy.id)

    def update_policy(
        self,
        session: Session,
        caller: Caller,
        policy_id: uuid.UUID,
        dto: PolicyUpdate,
        *,
        context: RequestContext | None = None,
    ) -> PolicyRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        policy = self.repository.get_or_404(session, policy_id)
        changes = dto.changes()
        before = _snapshot(policy)
        current = PolicyStatus(policy.status)
        target = POLICY_LIFECYCLE.check_update(current, caller.role, changes, {**before, **changes})
        _check_dates(changes.get("start_date", policy.start_date), changes.get("end_date", policy.end_date))

        self.repository.apply_changes(policy, changes)
        write_audit_log(
            session,
            context,
            caller,
            "policy.status_changed" if target is not None else "policy.updated",
            "policy",
            policy.id,
            client_id=policy.client_id,
            changes=diff_changes(before, _snapshot(policy)),
            metadata={"fromStatus": current, "toStatus": target or current},
        )
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Policy")
        logger.info(
            "policy.updated",
            extra={
                "user_id": str(caller.user_id),
                "role": caller.role,
                "resource": "policy",
                "resource_id": str(policy.id),
                "action": f"{current}->{target}" if target is not None else "edit",
            },
        )
        return self.get_policy(session, caller, policy.id)

    def list_policy_affiliates(self, session: Session, caller: Caller, policy_id: uuid.UUID) -> PolicyAffiliatesResponse:
        policy = self.repository.get_scoped(session, caller, policy_id)
        links = session.scalars(
            select(PolicyAffiliate)
            .join(Affiliate, Affiliate.id == PolicyAffiliate.affiliate_id)
            .where(PolicyAffiliate.policy_id == policy.id, PolicyAffiliate.is_active.is_(True))
            .options(selectinload(PolicyAffiliate.affiliate))
            .order_by(Affiliate.last_name.asc(), Affiliate.first_name.asc(), PolicyAffiliate.id.asc())
        ).all()
        return PolicyAffiliatesResponse(affiliates=[PolicyAffiliateRead.from_model(link) for link in links])

    def add_policy_affiliate(
        self,
        session: Session,
        caller: Caller,
        policy_id: uuid.UUID,
        dto: PolicyAffiliateAdd,
    ) -> PolicyAffiliateRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        policy = self.repository.get_or_404(session, policy_id)
        affiliate = session.get(Affiliate, dto.affiliate_id)
        if affiliate is None or affiliate.client_id != policy.client_id or not affiliate.is_active:
            raise ValidationFailedError.for_field(
                "affiliateId", "Affiliate must be active and belong to the policy's client"
            )

        link = session.scalar(
            select(PolicyAffiliate).where(
                PolicyAffiliate.policy_id == policy.id,
                PolicyAffiliate.affiliate_id == affiliate.id,
            )
        )
        if link is not None and link.is_active:
            raise ConflictError("Affiliate is already a member of this policy", field="affiliateId")
        if link is None:
            link = PolicyAffiliate(policy_id=policy.id, affiliate_id=affiliate.id)
            session.add(link)
        else:
            link.is_active = True
            link.removed_at = None
            link.added_at = utcnow()

        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Policy affiliate")
        session.refresh(link)
        logger.info(
            "policy.affiliate_added",
            extra={"user_id": str(caller.user_id), "resource": "policy", "resource_id": str(policy.id)},
        )
        return PolicyAffiliateRead.from_model(link)

    def remove_policy_affiliate(
        self,
        session: Session,
        caller: Caller,
        policy_id: uuid.UUID,
        affiliate_id: uuid.UUID,
    ) -> PolicyAffiliateRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        policy = self.repository.get_or_404(session, policy_id)
        link = session.scalar(
            select(PolicyAffiliate).where(
                PolicyAffiliate.policy_id == policy.id,
                PolicyAffiliate.affiliate_id == affiliate_id,
                PolicyAffiliate.is_active.is_(True),
            )
        )
        if link is None:
            raise NotFoundError("Policy affiliate not found")

        link.is_active = False
        link.removed_at = utcnow()
        session.commit()
        session.refresh(link)
        logger.info(
            "policy.affiliate_removed",
            extra={"user_id": str(caller.user_id), "resource": "policy", "resource_id": str(policy.id)},
        )
        return PolicyAffiliateRead.from_model(link)


policy_service = PolicyService()
