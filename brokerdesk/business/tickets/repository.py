from __future__ import annotations

from typing import Any

from sqlalchemy import and_, false, or_
from sqlalchemy.sql import Select

from brokerdesk.business.tickets.models import Ticket
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.repository import BaseRepository
from brokerdesk.platform.security.roles import Role
from brokerdesk.platform.security.scope import ScopeDecision


class TicketRepository(BaseRepository[Ticket]):
    """Affiliates only see tickets of their client that they reported or opened."""

    resource = "ticket"
    model = Ticket

    def apply_scope_query(self, query: Select[Any], caller: Caller) -> Select[Any]:
        if caller.role is Role.AFFILIATE:
            if caller.affiliate_client_id is None:
                return query.where(false())
            return query.where(
                and_(
                    Ticket.client_id == caller.affiliate_client_id,
                    or_(Ticket.reporter_id == caller.user_id, Ticket.created_by_id == caller.user_id),
                )
            )
        return super().apply_scope_query(query, caller)

    def decide(self, caller: Caller, row: Ticket) -> ScopeDecision:
        if caller.role is Role.AFFILIATE:
            owns = caller.user_id in (row.reporter_id, row.created_by_id)
            if caller.affiliate_client_id is not None and row.client_id == caller.affiliate_client_id and owns:
                return ScopeDecision.ALLOWED
            return ScopeDecision.OUT_OF_SCOPE
        return super().decide(caller, row)
