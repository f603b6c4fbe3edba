"""Status blueprint for policies.

A policy is configured by broker staff while PENDING and must be complete to
activate. Once active, only a super admin may touch it. EXPIRED may be
reactivated; CANCELLED is terminal but still correctable.
"""

from __future__ import annotations

from brokerdesk.business.policies.models import PolicyStatus
from brokerdesk.platform.lifecycle import Lifecycle, StatusRule
from brokerdesk.platform.security.roles import RoleGroup


POLICY_FIELDS = frozenset(
    {
        "policy_number",
        "type",
        "amb_copay",
        "hosp_copay",
        "maternity",
        "t_premium",
        "tplus1_premium",
        "tplusf_premium",
        "tax_rate",
        "additional_costs",
        "start_date",
        "end_date",
    }
)
EDITABLE_FIELDS = POLICY_FIELDS | {"is_active"}


POLICY_LIFECYCLE: Lifecycle[PolicyStatus] = Lifecycle(
    noun="policies",
    rules={
        PolicyStatus.PENDING: StatusRule(
            editors=RoleGroup.BROKER_EMPLOYEES,
            editable=EDITABLE_FIELDS,
            transitions={PolicyStatus.ACTIVE: POLICY_FIELDS},
        ),
        PolicyStatus.ACTIVE: StatusRule(
            editors=RoleGroup.SUPER_ADMIN_ONLY,
            editable=EDITABLE_FIELDS,
            transitions={PolicyStatus.EXPIRED: frozenset(), PolicyStatus.CANCELLED: frozenset()},
        ),
        PolicyStatus.EXPIRED: StatusRule(
            editors=RoleGroup.SUPER_ADMIN_ONLY,
            editable=EDITABLE_FIELDS,
            transitions={PolicyStatus.ACTIVE: POLICY_FIELDS, PolicyStatus.CANCELLED: frozenset()},
        ),
        PolicyStatus.CANCELLED: StatusRule(editors=RoleGroup.SUPER_ADMIN_ONLY, editable=EDITABLE_FIELDS),
    },
)
