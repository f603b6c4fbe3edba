from __future__ import annotations

import logging
import uuid
from enum import StrEnum
from typing import Any

from sqlalchemy import false, or_
from sqlalchemy.sql.elements import ColumnElement

from brokerdesk.core.errors import ForbiddenError, NotFoundError
from brokerdesk.metrics import observe_scope_denied
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import Role


logger = logging.getLogger("brokerdesk.scope")


class ScopeDecision(StrEnum):
    ALLOWED = "ALLOWED"
    OUT_OF_SCOPE = "OUT_OF_SCOPE"
    ROLE_FORBIDDEN = "ROLE_FORBIDDEN"


def resolve_client_scope(
    caller: Caller,
    client_id: uuid.UUID | None,
    *,
    affiliate_allowed: bool = True,
) -> ScopeDecision:
    """Decide whether the caller may act on rows owned by ``client_id``."""

    if caller.is_broker:
        return ScopeDecision.ALLOWED
    if caller.role is Role.CLIENT_ADMIN:
        return ScopeDecision.ALLOWED if client_id in caller.client_ids else ScopeDecision.OUT_OF_SCOPE
    if caller.role is Role.AFFILIATE and affiliate_allowed:
        if caller.affiliate_client_id is not None and client_id == caller.affiliate_client_id:
            return ScopeDecision.ALLOWED
        return ScopeDecision.OUT_OF_SCOPE
    return ScopeDecision.ROLE_FORBIDDEN


def resolve_affiliate_scope(
    caller: Caller,
    *,
    affiliate_id: uuid.UUID,
    client_id: uuid.UUID,
    primary_affiliate_id: uuid.UUID | None = None,
) -> ScopeDecision:
    """Affiliates see their own record and its dependents; everyone else goes by client."""

    if caller.role is Role.AFFILIATE:
        if caller.affiliate_id is None:
            return ScopeDecision.OUT_OF_SCOPE
        if affiliate_id == caller.affiliate_id or primary_affiliate_id == caller.affiliate_id:
            return ScopeDecision.ALLOWED
        return ScopeDecision.OUT_OF_SCOPE
    return resolve_client_scope(caller, client_id, affiliate_allowed=False)


def ensure_allowed(
    decision: ScopeDecision,
    caller: Caller,
    *,
    resource: str,
    resource_id: Any = None,
    not_found_message: str | None = None,
) -> None:
    if decision is ScopeDecision.ALLOWED:
        return

    observe_scope_denied(resource=resource, decision=decision)
    logger.info(
        "scope.denied",
        extra={
            "user_id": str(caller.user_id),
            "role": caller.role,
            "resource": resource,
            "resource_id": str(resource_id) if resource_id is not None else None,
            "decision": decision,
        },
    )
    if decision is ScopeDecision.ROLE_FORBIDDEN:
        raise ForbiddenError(f"Role is not allowed to access {resource}")
    raise NotFoundError(not_found_message or f"{resource} not found")


def client_scope_clause(
    caller: Caller,
    column: Any,
    *,
    resource: str,
    affiliate_allowed: bool = True,
) -> ColumnElement[bool] | None:
    """Predicate limiting a list query to the caller's clients, or None when unrestricted."""

    if caller.is_broker:
        return None
    if caller.role is Role.CLIENT_ADMIN:
        if not caller.client_ids:
            return false()
        return column.in_(sorted(caller.client_ids, key=str))
    if caller.role is Role.AFFILIATE and affiliate_allowed:
        if caller.affiliate_client_id is None:
            return false()
        return column == caller.affiliate_client_id
    ensure_allowed(ScopeDecision.ROLE_FORBIDDEN, caller, resource=resource)
    return None


def affiliate_scope_clause(caller: Caller, id_column: Any, primary_column: Any) -> ColumnElement[bool]:
    if caller.affiliate_id is None:
        return false()
    return or_(id_column == caller.affiliate_id, primary_column == caller.affiliate_id)


def check_client_filter(
    caller: Caller,
    client_id: uuid.UUID | None,
    *,
    resource: str,
    affiliate_allowed: bool = True,
) -> uuid.UUID | None:
    """Validate a caller-supplied clientId filter; returns the filter to apply.

    Affiliates are pinned to their own client so their filter is ignored.
    """

    if client_id is None:
        return None
    if caller.role is Role.AFFILIATE and affiliate_allowed:
        return None
    decision = resolve_client_scope(caller, client_id, affiliate_allowed=affiliate_allowed)
    ensure_allowed(decision, caller, resource="client", resource_id=client_id, not_found_message="Client not found")
    return client_id
