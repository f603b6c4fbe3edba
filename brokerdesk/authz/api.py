from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from brokerdesk.authz.schemas import ClientAccessUpdate, RoleListResponse, UserListResponse, UserRead
from brokerdesk.authz.service import user_admin_service
from brokerdesk.core.context import get_request_context
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import Role


users_router = APIRouter(prefix="/users", tags=["users"])
roles_router = APIRouter(prefix="/roles", tags=["users"])


@roles_router.get("", response_model=RoleListResponse)
def list_roles(db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> RoleListResponse:
    return user_admin_service.list_roles(db, caller)


@users_router.get("", response_model=UserListResponse)
def list_users(
    search: str | None = Query(default=None, max_length=200),
    role: Role | None = Query(default=None),
    is_active: bool | None = Query(default=None, alias="isActive"),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> UserListResponse:
    return user_admin_service.list_users(db, caller, page, search=search, role=role, is_active=is_active)


@users_router.put("/{user_id}/client-access", response_model=UserRead)
def set_client_access(
    request: Request,
    user_id: uuid.UUID,
    payload: ClientAccessUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> UserRead:
    return user_admin_service.set_client_access(db, caller, user_id, payload, context=get_request_context(request))


@users_router.patch("/{user_id}/deactivate", response_model=UserRead)
def deactivate_user(
    request: Request,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> UserRead:
    return user_admin_service.deactivate_user(db, caller, user_id, context=get_request_context(request))
