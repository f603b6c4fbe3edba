from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from brokerdesk.business.agents.schemas import AgentListResponse, AgentRead, AgentUpdate
from brokerdesk.business.agents.service import agent_service
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/agents", tags=["agents"])


@router.get("", response_model=AgentListResponse)
def list_agents(
    search: str | None = Query(default=None, max_length=200),
    is_active: bool | None = Query(default=None, alias="isActive"),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AgentListResponse:
    return agent_service.list_agents(db, caller, page, search=search, is_active=is_active)


@router.get("/{agent_id}", response_model=AgentRead)
def get_agent(agent_id: uuid.UUID, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> AgentRead:
    return agent_service.get_agent(db, caller, agent_id)


@router.patch("/{agent_id}", response_model=AgentRead)
def update_agent(
    agent_id: uuid.UUID,
    payload: AgentUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> AgentRead:
    return agent_service.update_agent(db, caller, agent_id, payload)
