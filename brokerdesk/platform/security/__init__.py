from brokerdesk.platform.security.caller import get_caller, load_caller
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.repository import BaseRepository
from brokerdesk.platform.security.roles import ROLE_GROUPS, Role, RoleGroup, in_group
from brokerdesk.platform.security.scope import (
    ScopeDecision,
    check_client_filter,
    ensure_allowed,
    resolve_affiliate_scope,
    resolve_client_scope,
)

__all__ = [
    "BaseRepository",
    "Caller",
    "ROLE_GROUPS",
    "Role",
    "RoleGroup",
    "ScopeDecision",
    "check_client_filter",
    "ensure_allowed",
    "get_caller",
    "in_group",
    "load_caller",
    "resolve_affiliate_scope",
    "resolve_client_scope",
]
