from __future__ import annotations

import logging
from collections.abc import Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brokerdesk.core.errors import ConflictError


logger = logging.getLogger("brokerdesk.integrity")

UNIQUE_VIOLATION_SQLSTATE = "23505"
_UNIQUE_MARKERS = ("unique constraint", "duplicate key", "unique violation")


def is_unique_violation(exc: IntegrityError) -> bool:
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _UNIQUE_MARKERS)


def conflict_from_integrity(exc: IntegrityError, fields: Mapping[str, str], *, resource: str) -> ConflictError | None:
    """Map a unique-constraint failure to a Conflict naming the offending API field.

    ``fields`` maps a column or constraint name, as it appears in the driver message,
    to the camelCase field reported to the caller. Anything else returns ``None``.
    """

    if not is_unique_violation(exc):
        return None
    message = str(exc.orig) if exc.orig is not None else str(exc)
    for marker, field in fields.items():
        if marker in message:
            return ConflictError(f"{resource} with this {field} already exists", field=field)
    return None


def commit_or_conflict(session: Session, fields: Mapping[str, str], *, resource: str) -> None:
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        conflict = conflict_from_integrity(exc, fields, resource=resource)
        if conflict is None:
            logger.error("integrity.unmapped", extra={"resource": resource, "error": str(exc.orig)})
            raise
        raise conflict from exc
