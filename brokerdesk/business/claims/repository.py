from __future__ import annotations

from typing import Any

from sqlalchemy import false
from sqlalchemy.sql import Select

from brokerdesk.business.claims.models import Claim
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.repository import BaseRepository
from brokerdesk.platform.security.roles import Role
from brokerdesk.platform.security.scope import ScopeDecision


class ClaimRepository(BaseRepository[Claim]):
    resource = "claim"
    model = Claim

    def apply_scope_query(self, query: Select[Any], caller: Caller) -> Select[Any]:
        if caller.role is Role.AFFILIATE:
            if caller.affiliate_id is None:
                return query.where(false())
            return query.where(Claim.affiliate_id == caller.affiliate_id)
        return super().apply_scope_query(query, caller)

    def decide(self, caller: Caller, row: Claim) -> ScopeDecision:
        if caller.role is Role.AFFILIATE:
            if caller.affiliate_id is not None and row.affiliate_id == caller.affiliate_id:
                return ScopeDecision.ALLOWED
            return ScopeDecision.OUT_OF_SCOPE
        return super().decide(caller, row)
