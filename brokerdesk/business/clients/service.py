from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from brokerdesk.business.clients.models import Client
from brokerdesk.business.clients.repository import ClientRepository
from brokerdesk.business.clients.schemas import ClientCreate, ClientListResponse, ClientRead, ClientUpdate
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup


logger = logging.getLogger("brokerdesk.clients")

_UNIQUE_FIELDS = {"tax_id": "taxId"}


@dataclass(slots=True)
class ClientService:
    repository: ClientRepository = ClientRepository()

    def list_clients(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> ClientListResponse:
        stmt: Select[tuple[Client]] = self.repository.apply_scope_query(select(Client), caller)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(Client.name.ilike(pattern), Client.tax_id.ilike(pattern), Client.email.ilike(pattern))
            )
        if is_active is not None:
            stmt = stmt.where(Client.is_active.is_(is_active))

        rows, meta = paginate(session, stmt, page, [Client.created_at.desc()], tie_breaker=Client.id)
        return ClientListResponse(clients=[ClientRead.model_validate(row) for row in rows], pagination=meta)

    def get_client(self, session: Session, caller: Caller, client_id: uuid.UUID) -> ClientRead:
        client = self.repository.get_scoped(session, caller, client_id)
        return ClientRead.model_validate(client)

    def create_client(self, session: Session, caller: Caller, dto: ClientCreate) -> ClientRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        client = Client(**dto.model_dump())
        session.add(client)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Client")
        session.refresh(client)
        logger.info(
            "client.created",
            extra={"user_id": str(caller.user_id), "resource": "client", "resource_id": str(client.id)},
        )
        return ClientRead.model_validate(client)

    def update_client(self, session: Session, caller: Caller, client_id: uuid.UUID, dto: ClientUpdate) -> ClientRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=self.repository.resource)
        client = self.repository.get_or_404(session, client_id)
        self.repository.apply_changes(client, dto.changes())
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Client")
        session.refresh(client)
        logger.info(
            "client.updated",
            extra={"user_id": str(caller.user_id), "resource": "client", "resource_id": str(client.id)},
        )
        return ClientRead.model_validate(client)


client_service = ClientService()
