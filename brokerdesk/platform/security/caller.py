from __future__ import annotations

import uuid

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from brokerdesk.authz.models import User, UserClient
from brokerdesk.business.affiliates.models import Affiliate
from brokerdesk.context import get_correlation_id
from brokerdesk.core.auth import AuthUser, get_current_user
from brokerdesk.core.database import get_db
from brokerdesk.core.errors import UnauthenticatedError
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import Role, parse_role


def load_caller(session: Session, subject: str, *, correlation_id: str | None = None) -> Caller:
    try:
        user_id = uuid.UUID(subject)
    except ValueError as exc:
        raise UnauthenticatedError("Invalid session subject") from exc

    user = session.scalar(select(User).where(User.id == user_id).options(selectinload(User.role)))
    if user is None or not user.is_active:
        raise UnauthenticatedError("Unknown or inactive user")

    role = parse_role(user.role.name if user.role is not None else None)
    client_ids: frozenset[uuid.UUID] = frozenset()
    affiliate_id: uuid.UUID | None = None
    affiliate_client_id: uuid.UUID | None = None

    if role is Role.CLIENT_ADMIN:
        client_ids = frozenset(
            session.scalars(
                select(UserClient.client_id).where(UserClient.user_id == user.id, UserClient.is_active.is_(True))
            ).all()
        )
    elif role is Role.AFFILIATE:
        affiliate = session.scalar(
            select(Affiliate).where(Affiliate.user_id == user.id, Affiliate.is_active.is_(True))
        )
        if affiliate is not None:
            affiliate_id = affiliate.id
            affiliate_client_id = affiliate.client_id

    return Caller(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=role,
        affiliate_id=affiliate_id,
        affiliate_client_id=affiliate_client_id,
        client_ids=client_ids,
        correlation_id=correlation_id,
    )


def get_caller(
    request: Request,
    auth_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Caller:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    caller = load_caller(db, auth_user.sub, correlation_id=correlation_id)
    request.state.caller = caller
    return caller
