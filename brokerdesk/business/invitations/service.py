from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, selectinload

from brokerdesk.authz.models import Role as RoleRecord, User
from brokerdesk.business.affiliates.models import Affiliate
from brokerdesk.business.agents.models import Agent
from brokerdesk.business.employees.models import Employee
from brokerdesk.business.invitations.models import Invitation, InvitationStatus, InvitationType
from brokerdesk.business.invitations.schemas import (
    AffiliateInvitationCreate,
    AgentInvitationCreate,
    EmployeeInvitationCreate,
    InvitationAccept,
    InvitationAccepted,
    InvitationIssued,
    InvitationListResponse,
    InvitationRead,
    InvitationValidation,
)
from brokerdesk.core.config import get_settings
from brokerdesk.core.context import RequestContext
from brokerdesk.core.database import utcnow
from brokerdesk.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import Role, RoleGroup, in_group
from brokerdesk.platform.security.scope import ensure_allowed, resolve_client_scope
from brokerdesk.services.audit import write_audit_log


logger = logging.getLogger("brokerdesk.invitations")

_RESOURCE = "invitation"
_ACCEPT_UNIQUE_FIELDS = {
    "employee_code": "employeeCode",
    "agent_code": "agentCode",
    "user_id": "userId",
    "email": "email",
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _expiry() -> datetime:
    return utcnow() + timedelta(days=get_settings().invitation_ttl_days)


@dataclass(slots=True)
class InvitationService:
    def list_invitations(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        status: InvitationStatus | None = None,
        invitation_type: InvitationType | None = None,
        search: str | None = None,
    ) -> InvitationListResponse:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        stmt: Select[tuple[Invitation]] = select(Invitation).options(selectinload(Invitation.role))
        if status is not None:
            stmt = stmt.where(Invitation.status == status)
        if invitation_type is not None:
            stmt = stmt.where(Invitation.type == invitation_type)
        if search:
            stmt = stmt.where(Invitation.email.ilike(f"%{search.strip()}%"))

        rows, meta = paginate(session, stmt, page, [Invitation.created_at.desc()], tie_breaker=Invitation.id)
        return InvitationListResponse(invitations=[InvitationRead.from_model(row) for row in rows], pagination=meta)

    def invite_employee(
        self,
        session: Session,
        caller: Caller,
        dto: EmployeeInvitationCreate,
        *,
        context: RequestContext | None = None,
    ) -> InvitationIssued:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        entity_data = dto.model_dump(by_alias=True, exclude={"email", "role"})
        return self._issue(session, caller, InvitationType.EMPLOYEE, str(dto.email), dto.role, entity_data, context=context)

    def invite_agent(
        self,
        session: Session,
        caller: Caller,
        dto: AgentInvitationCreate,
        *,
        context: RequestContext | None = None,
    ) -> InvitationIssued:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        entity_data = dto.model_dump(by_alias=True, exclude={"email", "role"})
        return self._issue(session, caller, InvitationType.AGENT, str(dto.email), dto.role, entity_data, context=context)

    def invite_affiliate(
        self,
        session: Session,
        caller: Caller,
        dto: AffiliateInvitationCreate,
        *,
        context: RequestContext | None = None,
    ) -> InvitationIssued:
        if not (caller.is_broker or caller.is_client_admin):
            ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)

        affiliate = session.get(Affiliate, dto.affiliate_id)
        if affiliate is None:
            raise NotFoundError("Affiliate not found")
        ensure_allowed(
            resolve_client_scope(caller, affiliate.client_id, affiliate_allowed=False),
            caller,
            resource="affiliate",
            resource_id=affiliate.id,
            not_found_message="Affiliate not found",
        )

        violations: list[dict[str, str]] = []
        if not affiliate.is_active:
            violations.append({"field": "affiliateId", "message": "Affiliate is inactive"})
        if affiliate.user_id is not None:
            violations.append({"field": "affiliateId", "message": "Affiliate already has a user account"})
        if not affiliate.email:
            violations.append({"field": "email", "message": "Affiliate has no email address"})
        if violations:
            raise ValidationFailedError("Affiliate cannot be invited", details=violations)

        entity_data = {"firstName": affiliate.first_name, "lastName": affiliate.last_name, "clientId": str(affiliate.client_id)}
        return self._issue(
            session,
            caller,
            InvitationType.AFFILIATE,
            str(affiliate.email),
            Role.AFFILIATE,
            entity_data,
            affiliate_id=affiliate.id,
            context=context,
        )

    def revoke(
        self,
        session: Session,
        caller: Caller,
        invitation_id: uuid.UUID,
        *,
        context: RequestContext | None = None,
    ) -> InvitationRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        invitation = self._load(session, invitation_id)
        if invitation.status != InvitationStatus.PENDING:
            raise ValidationFailedError.for_field("status", "Only pending invitations can be revoked")

        invitation.status = InvitationStatus.REVOKED
        write_audit_log(session, context, caller, "invitation.revoked", _RESOURCE, invitation.id)
        session.commit()
        logger.info("invitation.revoked", extra={"resource": _RESOURCE, "resource_id": str(invitation.id)})
        return InvitationRead.from_model(invitation)

    def resend(
        self,
        session: Session,
        caller: Caller,
        invitation_id: uuid.UUID,
        *,
        context: RequestContext | None = None,
    ) -> InvitationIssued:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        invitation = self._load(session, invitation_id)
        if invitation.status not in (InvitationStatus.PENDING, InvitationStatus.EXPIRED):
            raise ValidationFailedError.for_field("status", "Only pending or expired invitations can be resent")

        invitation.token = _new_token()
        invitation.expires_at = _expiry()
        invitation.status = InvitationStatus.PENDING
        write_audit_log(session, context, caller, "invitation.resent", _RESOURCE, invitation.id)
        session.commit()
        logger.info(
            "invitation.resent",
            extra={"resource": _RESOURCE, "resource_id": str(invitation.id), "invitation_token": invitation.token},
        )
        return InvitationIssued.from_model(invitation)

    def validate_token(self, session: Session, token: str) -> InvitationValidation:
        invitation = self._load_pending_by_token(session, token)
        return InvitationValidation(
            email=invitation.email,
            type=InvitationType(invitation.type),
            role=Role(invitation.role.name),
            expires_at=invitation.expires_at,
        )

    def accept(
        self,
        session: Session,
        caller: Caller,
        dto: InvitationAccept,
        *,
        context: RequestContext | None = None,
    ) -> InvitationAccepted:
        invitation = self._load_pending_by_token(session, dto.token)
        if caller.email.lower() != invitation.email.lower():
            logger.warning(
                "invitation.email_mismatch",
                extra={"user_id": str(caller.user_id), "resource": _RESOURCE, "resource_id": str(invitation.id)},
            )
            raise ForbiddenError("Your account email does not match the invitation")

        user = session.get(User, caller.user_id)
        if user is None:
            raise NotFoundError("User not found")

        entity_id = self._materialize_entity(session, invitation, user)
        user.role_id = invitation.role_id
        invitation.status = InvitationStatus.ACCEPTED
        invitation.accepted_at = utcnow()
        write_audit_log(
            session,
            context,
            caller,
            "invitation.accepted",
            _RESOURCE,
            invitation.id,
            metadata={"type": invitation.type, "entityId": entity_id},
        )
        commit_or_conflict(session, _ACCEPT_UNIQUE_FIELDS, resource="Invitation")
        logger.info(
            "invitation.accepted",
            extra={"user_id": str(caller.user_id), "resource": _RESOURCE, "resource_id": str(invitation.id)},
        )
        return InvitationAccepted(
            user_id=user.id,
            email=user.email,
            role=Role(invitation.role.name),
            entity_type=InvitationType(invitation.type),
            entity_id=entity_id,
        )

    def _issue(
        self,
        session: Session,
        caller: Caller,
        invitation_type: InvitationType,
        email: str,
        role: Role,
        entity_data: dict[str, Any],
        *,
        affiliate_id: uuid.UUID | None = None,
        context: RequestContext | None = None,
    ) -> InvitationIssued:
        if invitation_type is not InvitationType.AFFILIATE and not in_group(role, RoleGroup.BROKER_EMPLOYEES):
            raise ValidationFailedError.for_field("role", "Role must be a broker employee role")

        normalized = email.strip().lower()
        if session.scalar(select(User.id).where(func.lower(User.email) == normalized)) is not None:
            raise ConflictError("A user with this email already exists", field="email")
        pending = session.scalar(
            select(Invitation.id).where(
                func.lower(Invitation.email) == normalized,
                Invitation.status == InvitationStatus.PENDING,
            )
        )
        if pending is not None:
            raise ConflictError("A pending invitation already exists for this email", field="email")

        role_record = session.scalar(select(RoleRecord).where(RoleRecord.name == role.value))
        if role_record is None:
            raise ValidationFailedError.for_field("role", "Role is not provisioned")

        invitation = Invitation(
            token=_new_token(),
            email=normalized,
            type=invitation_type,
            status=InvitationStatus.PENDING,
            role_id=role_record.id,
            affiliate_id=affiliate_id,
            entity_data=entity_data,
            expires_at=_expiry(),
            created_by_id=caller.user_id,
        )
        session.add(invitation)
        session.flush()
        write_audit_log(
            session,
            context,
            caller,
            "invitation.created",
            _RESOURCE,
            invitation.id,
            metadata={"type": invitation_type, "email": normalized, "role": role},
        )
        commit_or_conflict(session, {"token": "token"}, resource="Invitation")
        logger.info(
            "invitation.created",
            extra={
                "user_id": str(caller.user_id),
                "resource": _RESOURCE,
                "resource_id": str(invitation.id),
                "invitation_token": invitation.token,
            },
        )
        return InvitationIssued.from_model(self._load(session, invitation.id))

    @staticmethod
    def _materialize_entity(session: Session, invitation: Invitation, user: User) -> uuid.UUID:
        data = invitation.entity_data or {}
        if invitation.type == InvitationType.EMPLOYEE:
            employee = Employee(
                first_name=data["firstName"],
                last_name=data["lastName"],
                email=invitation.email,
                phone=data.get("phone"),
                position=data.get("position"),
                department=data.get("department"),
                employee_code=data.get("employeeCode"),
                user_id=user.id,
            )
            session.add(employee)
            session.flush()
            return employee.id
        if invitation.type == InvitationType.AGENT:
            agent = Agent(
                first_name=data["firstName"],
                last_name=data["lastName"],
                email=invitation.email,
                phone=data.get("phone"),
                agent_code=data.get("agentCode"),
                user_id=user.id,
            )
            session.add(agent)
            session.flush()
            return agent.id

        affiliate = session.get(Affiliate, invitation.affiliate_id) if invitation.affiliate_id else None
        if affiliate is None:
            raise NotFoundError("Affiliate not found")
        if affiliate.user_id is not None:
            raise ValidationFailedError.for_field("affiliateId", "Affiliate already has a user account")
        affiliate.user_id = user.id
        return affiliate.id

    @staticmethod
    def _load(session: Session, invitation_id: uuid.UUID) -> Invitation:
        invitation = session.scalar(
            select(Invitation).where(Invitation.id == invitation_id).options(selectinload(Invitation.role))
        )
        if invitation is None:
            raise NotFoundError("Invitation not found")
        return invitation

    @staticmethod
    def _load_pending_by_token(session: Session, token: str) -> Invitation:
        invitation = session.scalar(
            select(Invitation).where(Invitation.token == token).options(selectinload(Invitation.role))
        )
        if invitation is None:
            raise NotFoundError("Invitation not found")
        if invitation.status == InvitationStatus.PENDING and _as_utc(invitation.expires_at) < utcnow():
            invitation.status = InvitationStatus.EXPIRED
            session.commit()
            logger.info("invitation.expired", extra={"resource": _RESOURCE, "resource_id": str(invitation.id)})
        if invitation.status != InvitationStatus.PENDING:
            raise ValidationFailedError.for_field("status", f"Invitation is {str(invitation.status).lower()}")
        return invitation


invitation_service = InvitationService()
