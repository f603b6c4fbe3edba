from __future__ import annotations

from brokerdesk.business.clients.models import Client
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.repository import BaseRepository
from brokerdesk.platform.security.scope import ScopeDecision, resolve_client_scope


class ClientRepository(BaseRepository[Client]):
    resource = "client"
    model = Client

    def client_column(self):  # type: ignore[no-untyped-def]
        return Client.id

    def decide(self, caller: Caller, row: Client) -> ScopeDecision:
        return resolve_client_scope(caller, row.id)
