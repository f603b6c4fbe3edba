from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from brokerdesk.core.context import RequestContext
from brokerdesk.models.audit import AuditLog
from brokerdesk.platform.security.context import Caller


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (uuid.UUID, Decimal)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return value


def write_audit_log(
    db: Session,
    context: RequestContext | None,
    caller: Caller,
    action: str,
    resource_type: str,
    resource_id: uuid.UUID | str,
    *,
    client_id: uuid.UUID | None = None,
    changes: dict[str, Any] | None = None,
    parent_id: uuid.UUID | str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's transaction; the caller commits."""

    event = AuditLog(
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id),
        parent_id=str(parent_id) if parent_id is not None else None,
        user_id=caller.user_id,
        client_id=client_id,
        changes=_jsonable(changes or {}),
        event_metadata=_jsonable(metadata or {}),
        correlation_id=(context.correlation_id or None) if context is not None else caller.correlation_id,
        ip_address=context.ip_address if context is not None else None,
        user_agent=context.user_agent if context is not None else None,
    )
    db.add(event)
    return event


def diff_changes(before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
    return {
        key: {"before": before.get(key), "after": after.get(key)}
        for key in after
        if before.get(key) != after.get(key)
    }
