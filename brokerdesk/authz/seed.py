from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from brokerdesk.authz.models import Role as RoleRecord
from brokerdesk.platform.security.roles import ROLE_DESCRIPTIONS, Role


def ensure_roles(session: Session) -> dict[Role, RoleRecord]:
    """Create any missing role rows; the role table mirrors the Role enum."""

    existing = {row.name: row for row in session.scalars(select(RoleRecord)).all()}
    records: dict[Role, RoleRecord] = {}
    for role in Role:
        record = existing.get(role.value)
        if record is None:
            record = RoleRecord(name=role.value, description=ROLE_DESCRIPTIONS[role])
            session.add(record)
        records[role] = record
    session.flush()
    return records
