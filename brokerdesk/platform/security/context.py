from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from brokerdesk.platform.security.roles import Role, is_broker_employee, is_senior_claim_manager, is_super_admin


@dataclass(slots=True, frozen=True)
class Caller:
    """Authenticated identity resolved once per request."""

    user_id: uuid.UUID
    email: str
    name: str | None = None
    role: Role | None = None
    affiliate_id: uuid.UUID | None = None
    affiliate_client_id: uuid.UUID | None = None
    client_ids: frozenset[uuid.UUID] = field(default_factory=frozenset)
    correlation_id: str | None = None

    @property
    def is_broker(self) -> bool:
        return is_broker_employee(self.role)

    @property
    def is_senior_claim_manager(self) -> bool:
        return is_senior_claim_manager(self.role)

    @property
    def is_super_admin(self) -> bool:
        return is_super_admin(self.role)

    @property
    def is_client_admin(self) -> bool:
        return self.role is Role.CLIENT_ADMIN

    @property
    def is_affiliate(self) -> bool:
        return self.role is Role.AFFILIATE
