"""Status blueprint for invoices."""

from __future__ import annotations

from brokerdesk.business.invoices.models import InvoiceStatus
from brokerdesk.platform.lifecycle import Lifecycle, StatusRule
from brokerdesk.platform.security.roles import RoleGroup


ENTRY_FIELDS = frozenset(
    {
        "invoice_number",
        "insurer_invoice_number",
        "billing_period",
        "total_amount",
        "tax_amount",
        "issue_date",
        "due_date",
        "notes",
    }
)
PAYMENT_FIELDS = frozenset({"payment_status", "payment_date"})
READY_FOR_REVIEW = frozenset({"billing_period", "tax_amount", "due_date"})


# no CANCELLED rule: the service rejects any change to a cancelled invoice first
INVOICE_LIFECYCLE: Lifecycle[InvoiceStatus] = Lifecycle(
    noun="invoices",
    rules={
        InvoiceStatus.PENDING: StatusRule(
            editors=RoleGroup.BROKER_EMPLOYEES,
            editable=ENTRY_FIELDS,
            transitions={
                InvoiceStatus.VALIDATED: READY_FOR_REVIEW,
                InvoiceStatus.DISCREPANCY: READY_FOR_REVIEW,
                InvoiceStatus.CANCELLED: frozenset(),
            },
        ),
        InvoiceStatus.VALIDATED: StatusRule(
            editors=RoleGroup.BROKER_EMPLOYEES,
            editable=PAYMENT_FIELDS | {"notes"},
            transitions={InvoiceStatus.DISCREPANCY: frozenset(), InvoiceStatus.CANCELLED: frozenset()},
        ),
        InvoiceStatus.DISCREPANCY: StatusRule(
            editors=RoleGroup.BROKER_EMPLOYEES,
            editable=PAYMENT_FIELDS | {"notes", "total_amount", "tax_amount", "billing_period"},
            transitions={InvoiceStatus.VALIDATED: frozenset({"notes"}), InvoiceStatus.CANCELLED: frozenset()},
        ),
    },
)
