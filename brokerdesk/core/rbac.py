import logging

from brokerdesk.core.errors import ForbiddenError
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup, in_group


logger = logging.getLogger("brokerdesk.rbac")


def ensure_role(caller: Caller, group: RoleGroup, *, resource: str) -> None:
    if in_group(caller.role, group):
        return
    logger.info(
        "rbac.denied",
        extra={"user_id": str(caller.user_id), "role": caller.role, "resource": resource, "decision": "ROLE_FORBIDDEN"},
    )
    raise ForbiddenError(f"Role is not allowed to access {resource}")
