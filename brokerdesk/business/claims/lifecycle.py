"""Status blueprint for claims."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from brokerdesk.business.claims.models import ClaimStatus
from brokerdesk.platform.lifecycle import Lifecycle, StatusRule
from brokerdesk.platform.security.roles import Role, RoleGroup


BASIC_FIELDS = frozenset(
    {
        "care_type",
        "diagnosis_code",
        "diagnosis_description",
        "amount_submitted",
        "incident_date",
        "submitted_date",
        "description",
        "policy_id",
    }
)
SETTLEMENT_FIELDS = frozenset(
    {
        "business_days",
        "amount_approved",
        "amount_denied",
        "amount_unprocessed",
        "deductible_applied",
        "copay_applied",
        "settlement_date",
        "settlement_number",
        "settlement_notes",
    }
)
REPROCESS_FIELDS = frozenset({"reprocess_date", "reprocess_description"})
TERMINAL_STATUSES = frozenset({ClaimStatus.RETURNED, ClaimStatus.SETTLED, ClaimStatus.CANCELLED})


CLAIM_LIFECYCLE: Lifecycle[ClaimStatus] = Lifecycle(
    noun="claims",
    rules={
        ClaimStatus.DRAFT: StatusRule(
            editors=RoleGroup.SENIOR_CLAIM_MANAGERS,
            editable=BASIC_FIELDS,
            transitions={
                ClaimStatus.VALIDATION: frozenset(
                    {"care_type", "incident_date", "submitted_date", "amount_submitted", "diagnosis_description"}
                ),
                ClaimStatus.CANCELLED: frozenset(),
            },
        ),
        ClaimStatus.VALIDATION: StatusRule(
            editors=RoleGroup.SENIOR_CLAIM_MANAGERS,
            editable=BASIC_FIELDS,
            transitions={
                ClaimStatus.SUBMITTED: frozenset(),
                ClaimStatus.RETURNED: frozenset(),
                ClaimStatus.CANCELLED: frozenset(),
            },
        ),
        ClaimStatus.SUBMITTED: StatusRule(
            editors=RoleGroup.SENIOR_CLAIM_MANAGERS,
            editable=SETTLEMENT_FIELDS,
            transitions={
                ClaimStatus.PENDING_INFO: frozenset(),
                ClaimStatus.SETTLED: frozenset(
                    {
                        "amount_approved",
                        "amount_denied",
                        "amount_unprocessed",
                        "deductible_applied",
                        "copay_applied",
                        "settlement_date",
                        "settlement_number",
                    }
                ),
                ClaimStatus.CANCELLED: frozenset(),
            },
        ),
        ClaimStatus.PENDING_INFO: StatusRule(
            editors=RoleGroup.SENIOR_CLAIM_MANAGERS,
            editable=BASIC_FIELDS | {"business_days"},
            transitions={
                ClaimStatus.SUBMITTED: REPROCESS_FIELDS,
                ClaimStatus.CANCELLED: frozenset(),
            },
            unlocks={ClaimStatus.SUBMITTED: REPROCESS_FIELDS},
        ),
        ClaimStatus.RETURNED: StatusRule(editors=RoleGroup.SUPER_ADMIN_ONLY),
        ClaimStatus.SETTLED: StatusRule(editors=RoleGroup.SUPER_ADMIN_ONLY),
        ClaimStatus.CANCELLED: StatusRule(editors=RoleGroup.SUPER_ADMIN_ONLY),
    },
)


def check_claim_update(
    current: ClaimStatus,
    role: Role | None,
    changes: Mapping[str, Any],
    merged: Mapping[str, Any],
) -> ClaimStatus | None:
    return CLAIM_LIFECYCLE.check_update(current, role, changes, merged)
