from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session, selectinload

from brokerdesk.business.affiliates.models import Affiliate, AffiliateType, CoverageType
from brokerdesk.business.affiliates.repository import AffiliateRepository
from brokerdesk.business.affiliates.schemas import (
    AffiliateCreate,
    AffiliateListResponse,
    AffiliateOwnerRead,
    AffiliateOwnersResponse,
    AffiliateRead,
    AffiliateUpdate,
)
from brokerdesk.business.clients.models import Client
from brokerdesk.core.errors import ValidationFailedError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import Role, RoleGroup
from brokerdesk.platform.security.scope import check_client_filter


logger = logging.getLogger("brokerdesk.affiliates")

_UNIQUE_FIELDS = {"document_number": "documentNumber", "user_id": "userId"}
_LOAD_OPTIONS = (selectinload(Affiliate.client), selectinload(Affiliate.primary_affiliate))


@dataclass(slots=True)
class AffiliateService:
    repository: AffiliateRepository = AffiliateRepository()

    def list_affiliates(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        client_id: uuid.UUID | None = None,
        search: str | None = None,
        affiliate_type: AffiliateType | None = None,
        coverage_type: CoverageType | None = None,
        is_active: bool | None = None,
    ) -> AffiliateListResponse:
        if caller.role is not Role.AFFILIATE:
            client_id = check_client_filter(caller, client_id, resource=self.repository.resource, affiliate_allowed=False)
        else:
            client_id = None

        stmt: Select[tuple[Affiliate]] = (
            select(Affiliate).join(Client, Client.id == Affiliate.client_id).options(*_LOAD_OPTIONS)
        )
        stmt = self.repository.apply_scope_query(stmt, caller)
        if client_id is not None:
            stmt = stmt.where(Affiliate.client_id == client_id)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    Affiliate.first_name.ilike(pattern),
                    Affiliate.last_name.ilike(pattern),
                    Affiliate.document_number.ilike(pattern),
                    Client.name.ilike(pattern),
                )
            )
        if affiliate_type is not None:
            stmt = stmt.where(Affiliate.affiliate_type == affiliate_type)
        if coverage_type is not None:
            stmt = stmt.where(Affiliate.coverage_type == coverage_type)
        if is_active is not None:
            stmt = stmt.where(Affiliate.is_active.is_(is_active))

        rows, meta = paginate(
            session,
            stmt,
            page,
            [Client.name.asc(), Affiliate.last_name.asc(), Affiliate.affiliate_type.asc(), Affiliate.first_name.asc()],
            tie_breaker=Affiliate.id,
        )
        return AffiliateListResponse(affiliates=[AffiliateRead.from_model(row) for row in rows], pagination=meta)

    def get_affiliate(self, session: Session, caller: Caller, affiliate_id: uuid.UUID) -> AffiliateRead:
        affiliate = self.repository.get_scoped(session, caller, affiliate_id, options=_LOAD_OPTIONS)
        return AffiliateRead.from_model(affiliate)

    def list_owners(self, session: Session, caller: Caller, client_id: uuid.UUID) -> AffiliateOwnersResponse:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        rows = session.scalars(
            select(Affiliate)
            .where(
                Affiliate.client_id == client_id,
                Affiliate.affiliate_type == AffiliateType.OWNER,
                Affiliate.is_active.is_(True),
            )
            .order_by(Affiliate.last_name.asc(), Affiliate.first_name.asc(), Affiliate.id.asc())
        ).all()
        return AffiliateOwnersResponse(owners=[AffiliateOwnerRead.model_validate(row) for row in rows])

    def create_affiliate(self, session: Session, caller: Caller, dto: AffiliateCreate) -> AffiliateRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        client = session.get(Client, dto.client_id)
        if client is None or not client.is_active:
            raise ValidationFailedError.for_field("clientId", "Client does not exist or is inactive")

        state = dto.model_dump()
        self._validate_relationships(session, state)
        affiliate = Affiliate(**state)
        session.add(affiliate)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Affiliate")
        logger.info(
            "affiliate.created",
            extra={"user_id": str(caller.user_id), "resource": "affiliate", "resource_id": str(affiliate.id)},
        )
        return self.get_affiliate(session, caller, affiliate.id)

    def update_affiliate(
        self,
        session: Session,
        caller: Caller,
        affiliate_id: uuid.UUID,
        dto: AffiliateUpdate,
    ) -> AffiliateRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        affiliate = self.repository.get_or_404(session, affiliate_id)
        changes = dto.changes()
        if changes.get("affiliate_type") == AffiliateType.OWNER:
            changes["primary_affiliate_id"] = None

        merged: dict[str, Any] = {
            "id": affiliate.id,
            "client_id": affiliate.client_id,
            "email": affiliate.email,
            "affiliate_type": affiliate.affiliate_type,
            "primary_affiliate_id": affiliate.primary_affiliate_id,
        }
        merged.update({key: value for key, value in changes.items() if key in merged})
        self._validate_relationships(session, merged)
        self._guard_dependents(session, affiliate, changes)

        self.repository.apply_changes(affiliate, changes)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Affiliate")
        return self.get_affiliate(session, caller, affiliate.id)

    @staticmethod
    def _guard_dependents(session: Session, affiliate: Affiliate, changes: dict[str, Any]) -> None:
        """An owner with active dependents stays an active owner."""

        if affiliate.affiliate_type != AffiliateType.OWNER:
            return
        demoted = changes.get("affiliate_type", AffiliateType.OWNER) != AffiliateType.OWNER
        deactivated = changes.get("is_active") is False and affiliate.is_active
        if not (demoted or deactivated):
            return
        dependents = session.scalar(
            select(func.count())
            .select_from(Affiliate)
            .where(Affiliate.primary_affiliate_id == affiliate.id, Affiliate.is_active.is_(True))
        )
        if not dependents:
            return

        violations: list[dict[str, str]] = []
        if demoted:
            violations.append(
                {"field": "affiliateType", "message": "Owner affiliates with active dependents cannot become dependents"}
            )
        if deactivated:
            violations.append(
                {"field": "isActive", "message": "Owner affiliates with active dependents cannot be deactivated"}
            )
        raise ValidationFailedError("Affiliate validation failed", details=violations)

    @staticmethod
    def _validate_relationships(session: Session, state: dict[str, Any]) -> None:
        """Owner and dependent rules, checked against the merged row state."""

        violations: list[dict[str, str]] = []
        affiliate_type = state.get("affiliate_type")
        primary_id = state.get("primary_affiliate_id")

        if affiliate_type == AffiliateType.OWNER:
            if not state.get("email"):
                violations.append({"field": "email", "message": "Email is required for owner affiliates"})
            if primary_id is not None:
                violations.append(
                    {"field": "primaryAffiliateId", "message": "Owner affiliates cannot have a primary affiliate"}
                )
        elif affiliate_type == AffiliateType.DEPENDENT:
            if primary_id is None:
                violations.append(
                    {"field": "primaryAffiliateId", "message": "Dependent affiliates require a primary affiliate"}
                )
            else:
                primary = session.get(Affiliate, primary_id)
                if (
                    primary is None
                    or primary.id == state.get("id")
                    or primary.affiliate_type != AffiliateType.OWNER
                    or not primary.is_active
                    or primary.client_id != state.get("client_id")
                ):
                    violations.append(
                        {
                            "field": "primaryAffiliateId",
                            "message": "Primary affiliate must be an active owner of the same client",
                        }
                    )

        if violations:
            raise ValidationFailedError("Affiliate validation failed", details=violations)


affiliate_service = AffiliateService()
