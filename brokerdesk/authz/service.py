from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session, selectinload

from brokerdesk.authz.models import Role as RoleRecord, User, UserClient
from brokerdesk.authz.schemas import (
    ClientAccessUpdate,
    MeRead,
    RoleListResponse,
    RoleRead,
    UserListResponse,
    UserRead,
)
from brokerdesk.business.clients.models import Client
from brokerdesk.core.context import RequestContext
from brokerdesk.core.errors import NotFoundError, ValidationFailedError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import Role, RoleGroup
from brokerdesk.services.audit import write_audit_log


logger = logging.getLogger("brokerdesk.authz")

_USER_OPTIONS = (selectinload(User.role), selectinload(User.client_access))


@dataclass(slots=True)
class UserAdminService:
    def me(self, caller: Caller) -> MeRead:
        return MeRead(
            id=caller.user_id,
            email=caller.email,
            name=caller.name,
            role=caller.role,
            affiliate_id=caller.affiliate_id,
            client_ids=sorted(caller.client_ids, key=str),
        )

    def list_roles(self, session: Session, caller: Caller) -> RoleListResponse:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource="role")
        rows = session.scalars(select(RoleRecord).order_by(RoleRecord.name.asc())).all()
        return RoleListResponse(roles=[RoleRead.model_validate(row) for row in rows])

    def list_users(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        search: str | None = None,
        role: Role | None = None,
        is_active: bool | None = None,
    ) -> UserListResponse:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource="user")
        stmt: Select[tuple[User]] = select(User).options(*_USER_OPTIONS)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if role is not None:
            stmt = stmt.join(RoleRecord, RoleRecord.id == User.role_id).where(RoleRecord.name == role.value)
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))

        rows, meta = paginate(session, stmt, page, [User.created_at.desc()], tie_breaker=User.id)
        return UserListResponse(users=[UserRead.from_model(row) for row in rows], pagination=meta)

    def set_client_access(
        self,
        session: Session,
        caller: Caller,
        user_id: uuid.UUID,
        dto: ClientAccessUpdate,
        *,
        context: RequestContext | None = None,
    ) -> UserRead:
        ensure_role(caller, RoleGroup.SUPER_ADMIN_ONLY, resource="user")
        user = self._load(session, user_id)
        if user.role is None or user.role.name != Role.CLIENT_ADMIN:
            raise ValidationFailedError.for_field("userId", "Client access can only be set for client administrators")

        requested = list(dict.fromkeys(dto.client_ids))
        found = set(session.scalars(select(Client.id).where(Client.id.in_(requested))).all()) if requested else set()
        missing = [client_id for client_id in requested if client_id not in found]
        if missing:
            raise ValidationFailedError(
                "Unknown clients",
                details=[{"field": "clientIds", "message": f"Client {client_id} does not exist"} for client_id in missing],
            )

        before = sorted((grant.client_id for grant in user.client_access if grant.is_active), key=str)
        wanted = set(requested)
        for grant in list(user.client_access):
            if grant.client_id not in wanted:
                user.client_access.remove(grant)
        present = {grant.client_id for grant in user.client_access}
        for grant in user.client_access:
            grant.is_active = True
        for client_id in requested:
            if client_id not in present:
                user.client_access.append(UserClient(client_id=client_id))

        write_audit_log(
            session,
            context,
            caller,
            "user.client_access_updated",
            "user",
            user.id,
            changes={"clientIds": {"before": before, "after": sorted(wanted, key=str)}},
        )
        session.commit()
        logger.info(
            "user.client_access_updated",
            extra={"user_id": str(caller.user_id), "resource": "user", "resource_id": str(user.id)},
        )
        return UserRead.from_model(self._load(session, user.id))

    def deactivate_user(
        self,
        session: Session,
        caller: Caller,
        user_id: uuid.UUID,
        *,
        context: RequestContext | None = None,
    ) -> UserRead:
        ensure_role(caller, RoleGroup.SUPER_ADMIN_ONLY, resource="user")
        if user_id == caller.user_id:
            raise ValidationFailedError.for_field("userId", "You cannot deactivate your own account")
        user = self._load(session, user_id)
        was_active = user.is_active
        user.is_active = False
        write_audit_log(
            session,
            context,
            caller,
            "user.deactivated",
            "user",
            user.id,
            changes={"isActive": {"before": was_active, "after": False}},
        )
        session.commit()
        logger.info(
            "user.deactivated",
            extra={"user_id": str(caller.user_id), "resource": "user", "resource_id": str(user.id)},
        )
        return UserRead.from_model(self._load(session, user.id))

    @staticmethod
    def _load(session: Session, user_id: uuid.UUID) -> User:
        user = session.scalar(select(User).where(User.id == user_id).options(*_USER_OPTIONS))
        if user is None:
            raise NotFoundError("User not found")
        return user


user_admin_service = UserAdminService()
