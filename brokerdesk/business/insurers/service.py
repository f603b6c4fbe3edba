from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from brokerdesk.business.insurers.models import Insurer
from brokerdesk.business.insurers.schemas import InsurerCreate, InsurerListResponse, InsurerRead, InsurerUpdate
from brokerdesk.core.errors import NotFoundError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup


logger = logging.getLogger("brokerdesk.insurers")

_RESOURCE = "insurer"
_UNIQUE_FIELDS = {"insurer.name": "name", "insurer_name": "name", "insurer.code": "code", "insurer_code": "code"}


@dataclass(slots=True)
class InsurerService:
    def list_insurers(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> InsurerListResponse:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        stmt: Select[tuple[Insurer]] = select(Insurer)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(Insurer.name.ilike(pattern), Insurer.code.ilike(pattern), Insurer.email.ilike(pattern)))
        if is_active is not None:
            stmt = stmt.where(Insurer.is_active.is_(is_active))

        rows, meta = paginate(session, stmt, page, [Insurer.name.asc()], tie_breaker=Insurer.id)
        return InsurerListResponse(insurers=[InsurerRead.model_validate(row) for row in rows], pagination=meta)

    def get_insurer(self, session: Session, caller: Caller, insurer_id: uuid.UUID) -> InsurerRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        return InsurerRead.model_validate(self._load(session, insurer_id))

    def create_insurer(self, session: Session, caller: Caller, dto: InsurerCreate) -> InsurerRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        insurer = Insurer(**dto.model_dump())
        session.add(insurer)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Insurer")
        session.refresh(insurer)
        logger.info("insurer.created", extra={"resource": _RESOURCE, "resource_id": str(insurer.id)})
        return InsurerRead.model_validate(insurer)

    def update_insurer(self, session: Session, caller: Caller, insurer_id: uuid.UUID, dto: InsurerUpdate) -> InsurerRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        insurer = self._load(session, insurer_id)
        for key, value in dto.changes().items():
            setattr(insurer, key, value)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Insurer")
        session.refresh(insurer)
        return InsurerRead.model_validate(insurer)

    @staticmethod
    def _load(session: Session, insurer_id: uuid.UUID) -> Insurer:
        insurer = session.get(Insurer, insurer_id)
        if insurer is None:
            raise NotFoundError("Insurer not found")
        return insurer


insurer_service = InsurerService()
