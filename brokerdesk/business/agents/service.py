from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from brokerdesk.business.agents.models import Agent
from brokerdesk.business.agents.schemas import AgentListResponse, AgentRead, AgentUpdate
from brokerdesk.core.errors import NotFoundError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup


_RESOURCE = "agent"
_UNIQUE_FIELDS = {"agent_code": "agentCode", "email": "email", "user_id": "userId"}


@dataclass(slots=True)
class AgentService:
    def list_agents(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> AgentListResponse:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        stmt: Select[tuple[Agent]] = select(Agent)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    Agent.first_name.ilike(pattern),
                    Agent.last_name.ilike(pattern),
                    Agent.email.ilike(pattern),
                    Agent.agent_code.ilike(pattern),
                )
            )
        if is_active is not None:
            stmt = stmt.where(Agent.is_active.is_(is_active))

        rows, meta = paginate(
            session, stmt, page, [Agent.last_name.asc(), Agent.first_name.asc()], tie_breaker=Agent.id
        )
        return AgentListResponse(agents=[AgentRead.model_validate(row) for row in rows], pagination=meta)

    def get_agent(self, session: Session, caller: Caller, agent_id: uuid.UUID) -> AgentRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        return AgentRead.model_validate(self._load(session, agent_id))

    def update_agent(self, session: Session, caller: Caller, agent_id: uuid.UUID, dto: AgentUpdate) -> AgentRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        agent = self._load(session, agent_id)
        for key, value in dto.changes().items():
            setattr(agent, key, value)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Agent")
        session.refresh(agent)
        return AgentRead.model_validate(agent)

    @staticmethod
    def _load(session: Session, agent_id: uuid.UUID) -> Agent:
        agent = session.get(Agent, agent_id)
        if agent is None:
            raise NotFoundError("Agent not found")
        return agent


agent_service = AgentService()
