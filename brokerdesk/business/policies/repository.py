from __future__ import annotations

from brokerdesk.business.policies.models import Policy
from brokerdesk.platform.security.repository import BaseRepository


class PolicyRepository(BaseRepository[Policy]):
    resource = "policy"
    model = Policy
    affiliate_allowed = False
