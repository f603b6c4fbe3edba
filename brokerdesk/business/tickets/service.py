from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from brokerdesk.authz.models import Role as RoleRecord, User
from brokerdesk.business.claims.models import Claim
from brokerdesk.business.clients.models import Client
from brokerdesk.business.tickets.models import Ticket, TicketMessage, TicketPriority, TicketStatus
from brokerdesk.business.tickets.repository import TicketRepository
from brokerdesk.business.tickets.schemas import (
    TicketAssign,
    TicketCreate,
    TicketDetail,
    TicketListResponse,
    TicketMessageCreate,
    TicketMessageRead,
    TicketRead,
    TicketUpdate,
)
from brokerdesk.core.context import RequestContext
from brokerdesk.core.database import utcnow
from brokerdesk.core.errors import ForbiddenError, ValidationFailedError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.numbering import TICKET_SEQUENCE, next_sequence_value, ticket_codec
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import ROLE_GROUPS, Role, RoleGroup
from brokerdesk.platform.security.scope import check_client_filter, ensure_allowed, resolve_client_scope
from brokerdesk.services.audit import write_audit_log


logger = logging.getLogger("brokerdesk.tickets")

_UNIQUE_FIELDS = {"ticket_number": "ticketNumber", "ticket_sequence": "ticketNumber"}
_LOAD_OPTIONS = (
    selectinload(Ticket.client),
    selectinload(Ticket.reporter),
    selectinload(Ticket.related_claim),
    selectinload(Ticket.created_by),
    selectinload(Ticket.assigned_to),
)
_DETAIL_OPTIONS = (*_LOAD_OPTIONS, selectinload(Ticket.messages).selectinload(TicketMessage.author))


def _load_broker_assignee(session: Session, user_id: uuid.UUID) -> User:
    broker_roles = [role.value for role in ROLE_GROUPS[RoleGroup.BROKER_EMPLOYEES]]
    user = session.scalar(
        select(User)
        .join(RoleRecord, RoleRecord.id == User.role_id)
        .where(User.id == user_id, User.is_active.is_(True), RoleRecord.name.in_(broker_roles))
    )
    if user is None:
        raise ValidationFailedError.for_field("assignedToId", "Assignee must be an active broker employee")
    return user


@dataclass(slots=True)
class TicketService:
    repository: TicketRepository = TicketRepository()

    def list_tickets(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        status: TicketStatus | None = None,
        priority: TicketPriority | None = None,
        category: str | None = None,
        client_id: uuid.UUID | None = None,
        search: str | None = None,
        assigned_to_id: uuid.UUID | None = None,
    ) -> TicketListResponse:
        stmt: Select[tuple[Ticket]] = self.repository.apply_scope_query(select(Ticket).options(*_LOAD_OPTIONS), caller)
        client_id = check_client_filter(caller, client_id, resource=self.repository.resource)
        if client_id is not None:
            stmt = stmt.where(Ticket.client_id == client_id)
        if status is not None:
            stmt = stmt.where(Ticket.status == status)
        if priority is not None:
            stmt = stmt.where(Ticket.priority == priority)
        if category:
            stmt = stmt.where(Ticket.category == category)
        if search and search.strip():
            stmt = stmt.where(Ticket.ticket_number == search.strip().upper())
        if assigned_to_id is not None and caller.is_broker:
            stmt = stmt.where(Ticket.assigned_to_id == assigned_to_id)

        rows, meta = paginate(session, stmt, page, [Ticket.created_at.desc()], tie_breaker=Ticket.id)
        return TicketListResponse(tickets=[TicketRead.from_model(row) for row in rows], pagination=meta)

    def get_ticket(self, session: Session, caller: Caller, ticket_id: uuid.UUID) -> TicketDetail:
        ticket = self.repository.get_scoped(session, caller, ticket_id, options=_DETAIL_OPTIONS)
        return TicketDetail.from_model(ticket)

    def create_ticket(
        self,
        session: Session,
        caller: Caller,
        dto: TicketCreate,
        *,
        context: RequestContext | None = None,
    ) -> TicketDetail:
        ensure_role(caller, RoleGroup.ALL_AUTHORIZED, resource=self.repository.resource)
        ensure_allowed(
            resolve_client_scope(caller, dto.client_id),
            caller,
            resource="client",
            resource_id=dto.client_id,
            not_found_message="Client not found",
        )
        client = session.get(Client, dto.client_id)
        if client is None or not client.is_active:
            raise ValidationFailedError.for_field("clientId", "Client does not exist or is inactive")

        if dto.related_claim_id is not None:
            claim = session.get(Claim, dto.related_claim_id)
            if (
                claim is None
                or claim.client_id != dto.client_id
                or (caller.role is Role.AFFILIATE and claim.affiliate_id != caller.affiliate_id)
            ):
                raise ValidationFailedError.for_field("relatedClaimId", "Related claim must belong to the same client")

        if dto.assigned_to_id is not None:
            if not caller.is_broker:
                raise ForbiddenError("Only broker employees can assign tickets")
            _load_broker_assignee(session, dto.assigned_to_id)

        sequence = next_sequence_value(session, TICKET_SEQUENCE)
        ticket = Ticket(
            ticket_sequence=sequence,
            ticket_number=ticket_codec().encode(sequence),
            subject=dto.subject,
            status=TicketStatus.OPEN,
            priority=dto.priority,
            category=dto.category,
            client_id=dto.client_id,
            reporter_id=caller.user_id,
            related_claim_id=dto.related_claim_id,
            created_by_id=caller.user_id,
            assigned_to_id=dto.assigned_to_id,
        )
        session.add(ticket)
        session.flush()
        session.add(TicketMessage(ticket_id=ticket.id, author_id=caller.user_id, message=dto.message))
        write_audit_log(
            session,
            context,
            caller,
            "ticket.created",
            "ticket",
            ticket.id,
            client_id=ticket.client_id,
            metadata={"ticketNumber": ticket.ticket_number, "priority": dto.priority},
        )
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Ticket")
        logger.info(
            "ticket.created",
            extra={"user_id": str(caller.user_id), "resource": "ticket", "resource_id": str(ticket.id)},
        )
        return self.get_ticket(session, caller, ticket.id)

    def update_ticket(
        self,
        session: Session,
        caller: Caller,
        ticket_id: uuid.UUID,
        dto: TicketUpdate,
        *,
        context: RequestContext | None = None,
    ) -> TicketDetail:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        ticket = self.repository.get_or_404(session, ticket_id)
        changes = dto.changes()
        previous_status = ticket.status
        new_status = changes.get("status", previous_status)
        if new_status == TicketStatus.CLOSED and previous_status != TicketStatus.CLOSED:
            changes["closed_at"] = utcnow()
        elif previous_status == TicketStatus.CLOSED and new_status != TicketStatus.CLOSED:
            changes["closed_at"] = None

        before = self.repository.apply_changes(ticket, changes)
        write_audit_log(
            session,
            context,
            caller,
            "ticket.updated",
            "ticket",
            ticket.id,
            client_id=ticket.client_id,
            changes={key: {"before": before[key], "after": value} for key, value in changes.items()},
        )
        session.commit()
        return self.get_ticket(session, caller, ticket.id)

    def assign_ticket(
        self,
        session: Session,
        caller: Caller,
        ticket_id: uuid.UUID,
        dto: TicketAssign,
        *,
        context: RequestContext | None = None,
    ) -> TicketDetail:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        ticket = self.repository.get_or_404(session, ticket_id)
        if ticket.status == TicketStatus.CLOSED:
            raise ValidationFailedError.for_field("status", "Closed tickets cannot be reassigned")
        assignee = _load_broker_assignee(session, dto.assigned_to_id)

        previous = ticket.assigned_to_id
        ticket.assigned_to_id = assignee.id
        write_audit_log(
            session,
            context,
            caller,
            "ticket.assigned",
            "ticket",
            ticket.id,
            client_id=ticket.client_id,
            changes={"assigned_to_id": {"before": previous, "after": assignee.id}},
        )
        session.commit()
        logger.info(
            "ticket.assigned",
            extra={"user_id": str(caller.user_id), "resource": "ticket", "resource_id": str(ticket.id)},
        )
        return self.get_ticket(session, caller, ticket.id)

    def add_message(
        self,
        session: Session,
        caller: Caller,
        ticket_id: uuid.UUID,
        dto: TicketMessageCreate,
    ) -> TicketMessageRead:
        ticket = self.repository.get_scoped(session, caller, ticket_id)
        message = TicketMessage(ticket_id=ticket.id, author_id=caller.user_id, message=dto.message)
        session.add(message)
        ticket.updated_at = utcnow()
        session.commit()
        session.refresh(message)
        return TicketMessageRead.from_model(message)


ticket_service = TicketService()
