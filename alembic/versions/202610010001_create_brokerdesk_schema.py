"""create brokerdesk schema and seed roles

Revision ID: 202610010001
Revises:
Create Date: 2026-10-01 09:00:00
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from alembic import op
import sqlalchemy as sa


revision: str = "202610010001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


_ROLES = {
    "SUPER_ADMIN": "Full administrative access",
    "CLAIMS_EMPLOYEE": "Broker employee handling claims",
    "OPERATIONS_EMPLOYEE": "Broker employee handling operations",
    "ADMIN_EMPLOYEE": "Broker employee handling administration",
    "CLIENT_ADMIN": "Administrator for one or more client companies",
    "AFFILIATE": "Insured affiliate of a client company",
}


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "role",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "app_user",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("role_id", sa.Uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["role_id"], ["role.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_app_user_role_active", "app_user", ["role_id", "is_active"], unique=False)

    op.create_table(
        "client",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("tax_id", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tax_id"),
    )

    op.create_table(
        "user_client",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["client_id"], ["client.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "client_id", name="uq_user_client_pair"),
    )
    op.create_index("ix_user_client_client_id", "user_client", ["client_id"], unique=False)

    op.create_table(
        "insurer",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("website", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "affiliate",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.String(length=200), nullable=False),
        sa.Column("last_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("document_type", sa.String(length=20), nullable=True),
        sa.Column("document_number", sa.String(length=20), nullable=True),
        sa.Column("affiliate_type", sa.String(length=16), nullable=False),
        sa.Column("coverage_type", sa.String(length=16), nullable=True),
        sa.Column("primary_affiliate_id", sa.Uuid(), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["client.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["primary_affiliate_id"], ["affiliate.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_number"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_affiliate_client_type", "affiliate", ["client_id", "affiliate_type", "is_active"], unique=False)
    op.create_index("ix_affiliate_primary", "affiliate", ["primary_affiliate_id"], unique=False)
    op.create_index("ix_affiliate_names", "affiliate", ["last_name", "first_name"], unique=False)

    for table, code_column in (("employee", "employee_code"), ("agent", "agent_code")):
        extra = [
            sa.Column("position", sa.String(length=100), nullable=True),
            sa.Column("department", sa.String(length=100), nullable=True),
        ] if table == "employee" else []
        op.create_table(
            table,
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("first_name", sa.String(length=100), nullable=False),
            sa.Column("last_name", sa.String(length=100), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("phone", sa.String(length=40), nullable=True),
            *extra,
            sa.Column(code_column, sa.String(length=20), nullable=True),
            sa.Column("user_id", sa.Uuid(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
            sa.UniqueConstraint(code_column),
            sa.UniqueConstraint("user_id"),
        )
        op.create_index(f"ix_{table}_names", table, ["last_name", "first_name"], unique=False)

    op.create_table(
        "policy",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("policy_number", sa.String(length=50), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("insurer_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("amb_copay", sa.Numeric(12, 2), nullable=True),
        sa.Column("hosp_copay", sa.Numeric(12, 2), nullable=True),
        sa.Column("maternity", sa.Numeric(12, 2), nullable=True),
        sa.Column("t_premium", sa.Numeric(12, 2), nullable=True),
        sa.Column("tplus1_premium", sa.Numeric(12, 2), nullable=True),
        sa.Column("tplusf_premium", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["client.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["insurer_id"], ["insurer.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("policy_number"),
    )
    op.create_index("ix_policy_client_status", "policy", ["client_id", "status"], unique=False)
    op.create_index("ix_policy_insurer", "policy", ["insurer_id"], unique=False)

    op.create_table(
        "policy_affiliate",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("policy_id", sa.Uuid(), nullable=False),
        sa.Column("affiliate_id", sa.Uuid(), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("removed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.ForeignKeyConstraint(["policy_id"], ["policy.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["affiliate_id"], ["affiliate.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("policy_id", "affiliate_id", name="uq_policy_affiliate_pair"),
    )
    op.create_index("ix_policy_affiliate_affiliate", "policy_affiliate", ["affiliate_id", "is_active"], unique=False)

    op.create_table(
        "invoice",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("invoice_number", sa.String(length=50), nullable=False),
        sa.Column("insurer_invoice_number", sa.String(length=50), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("insurer_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("payment_status", sa.String(length=20), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("tax_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("billing_period", sa.String(length=7), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["client.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["insurer_id"], ["insurer.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("insurer_id", "insurer_invoice_number", name="uq_invoice_insurer_number"),
    )
    op.create_index("ix_invoice_client_status", "invoice", ["client_id", "status"], unique=False)
    op.create_index("ix_invoice_issue_date", "invoice", ["issue_date"], unique=False)

    op.create_table(
        "claim",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("claim_sequence", sa.Integer(), nullable=False),
        sa.Column("claim_number", sa.String(length=32), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("affiliate_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("policy_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("care_type", sa.String(length=20), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("diagnosis_code", sa.String(length=20), nullable=True),
        sa.Column("diagnosis_description", sa.Text(), nullable=True),
        sa.Column("amount_submitted", sa.Numeric(14, 2), nullable=True),
        sa.Column("amount_approved", sa.Numeric(14, 2), nullable=True),
        sa.Column("amount_denied", sa.Numeric(14, 2), nullable=True),
        sa.Column("amount_unprocessed", sa.Numeric(14, 2), nullable=True),
        sa.Column("deductible_applied", sa.Numeric(14, 2), nullable=True),
        sa.Column("copay_applied", sa.Numeric(14, 2), nullable=True),
        sa.Column("incident_date", sa.Date(), nullable=True),
        sa.Column("submitted_date", sa.Date(), nullable=True),
        sa.Column("settlement_date", sa.Date(), nullable=True),
        sa.Column("settlement_number", sa.String(length=50), nullable=True),
        sa.Column("settlement_notes", sa.Text(), nullable=True),
        sa.Column("business_days", sa.Integer(), nullable=True),
        sa.Column("reprocess_date", sa.Date(), nullable=True),
        sa.Column("reprocess_description", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["client.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["affiliate_id"], ["affiliate.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["patient_id"], ["affiliate.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["policy_id"], ["policy.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by_id"], ["app_user.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("claim_sequence"),
        sa.UniqueConstraint("claim_number"),
    )
    op.create_index("ix_claim_client_status", "claim", ["client_id", "status"], unique=False)
    op.create_index("ix_claim_affiliate", "claim", ["affiliate_id"], unique=False)
    op.create_index("ix_claim_created_at", "claim", ["created_at"], unique=False)

    op.create_table(
        "ticket",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("ticket_sequence", sa.Integer(), nullable=False),
        sa.Column("ticket_number", sa.String(length=32), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("status", sa.String(length=24), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("reporter_id", sa.Uuid(), nullable=True),
        sa.Column("related_claim_id", sa.Uuid(), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), nullable=False),
        sa.Column("assigned_to_id", sa.Uuid(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["client.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["reporter_id"], ["app_user.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["related_claim_id"], ["claim.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by_id"], ["app_user.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["app_user.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ticket_sequence"),
        sa.UniqueConstraint("ticket_number"),
    )
    op.create_index("ix_ticket_client_status", "ticket", ["client_id", "status"], unique=False)
    op.create_index("ix_ticket_assigned_to", "ticket", ["assigned_to_id"], unique=False)
    op.create_index("ix_ticket_created_at", "ticket", ["created_at"], unique=False)

    op.create_table(
        "ticket_message",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("ticket_id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["ticket_id"], ["ticket.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["app_user.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ticket_message_ticket", "ticket_message", ["ticket_id", "created_at"], unique=False)

    op.create_table(
        "invitation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("role_id", sa.Uuid(), nullable=False),
        sa.Column("affiliate_id", sa.Uuid(), nullable=True),
        sa.Column("entity_data", sa.JSON(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["role_id"], ["role.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["affiliate_id"], ["affiliate.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by_id"], ["app_user.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
    )
    op.create_index("ix_invitation_email_status", "invitation", ["email", "status"], unique=False)
    op.create_index("ix_invitation_created_at", "invitation", ["created_at"], unique=False)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("resource_type", sa.String(length=64), nullable=False),
        sa.Column("resource_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("client_id", sa.Uuid(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("correlation_id", sa.String(length=128), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_resource", "audit_log", ["resource_type", "resource_id"], unique=False)
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"], unique=False)

    op.create_table(
        "number_sequence",
        sa.Column("name", sa.String(length=32), nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )

    _seed_baseline()


def _seed_baseline() -> None:
    now = datetime.now(timezone.utc)
    role_table = sa.table(
        "role",
        sa.column("id", sa.Uuid()),
        sa.column("name", sa.String()),
        sa.column("description", sa.Text()),
        sa.column("created_at", sa.DateTime(timezone=True)),
    )
    op.bulk_insert(
        role_table,
        [
            {"id": uuid.uuid4(), "name": name, "description": description, "created_at": now}
            for name, description in _ROLES.items()
        ],
    )

    sequence_table = sa.table(
        "number_sequence",
        sa.column("name", sa.String()),
        sa.column("last_value", sa.Integer()),
    )
    op.bulk_insert(sequence_table, [{"name": "ticket", "last_value": 0}, {"name": "claim", "last_value": 0}])


def downgrade() -> None:
    for table in (
        "number_sequence",
        "audit_log",
        "invitation",
        "ticket_message",
        "ticket",
        "claim",
        "invoice",
        "policy_affiliate",
        "policy",
        "agent",
        "employee",
        "affiliate",
        "insurer",
        "user_client",
        "client",
        "app_user",
        "role",
    ):
        op.drop_table(table)
