from __future__ import annotations

from typing import Any

from sqlalchemy.sql import Select

from brokerdesk.business.affiliates.models import Affiliate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.repository import BaseRepository
from brokerdesk.platform.security.roles import Role
from brokerdesk.platform.security.scope import ScopeDecision, affiliate_scope_clause, resolve_affiliate_scope


class AffiliateRepository(BaseRepository[Affiliate]):
    resource = "affiliate"
    model = Affiliate
    affiliate_allowed = False

    def apply_scope_query(self, query: Select[Any], caller: Caller) -> Select[Any]:
        if caller.role is Role.AFFILIATE:
            return query.where(affiliate_scope_clause(caller, Affiliate.id, Affiliate.primary_affiliate_id))
        return super().apply_scope_query(query, caller)

    def decide(self, caller: Caller, row: Affiliate) -> ScopeDecision:
        return resolve_affiliate_scope(
            caller,
            affiliate_id=row.id,
            client_id=row.client_id,
            primary_affiliate_id=row.primary_affiliate_id,
        )
