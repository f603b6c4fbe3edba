"""claim invoices, audit parent, policy and invoice lifecycle columns

Revision ID: 202610180001
Revises: 202610010001
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610180001"
down_revision: str | None = "202610010001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.add_column("policy", sa.Column("tax_rate", sa.Numeric(5, 4), nullable=True))
    op.add_column("policy", sa.Column("additional_costs", sa.Numeric(12, 2), nullable=True))
    op.add_column("invoice", sa.Column("payment_date", sa.Date(), nullable=True))

    op.add_column("audit_log", sa.Column("parent_id", sa.String(length=64), nullable=True))
    op.create_index("ix_audit_log_parent", "audit_log", ["parent_id"], unique=False)

    op.create_table(
        "claim_invoice",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("claim_id", sa.Uuid(), nullable=False),
        sa.Column("invoice_number", sa.String(length=100), nullable=False),
        sa.Column("provider_name", sa.String(length=200), nullable=False),
        sa.Column("amount_submitted", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["claim_id"], ["claim.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by_id"], ["app_user.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_claim_invoice_claim", "claim_invoice", ["claim_id", "created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_claim_invoice_claim", table_name="claim_invoice")
    op.drop_table("claim_invoice")
    op.drop_index("ix_audit_log_parent", table_name="audit_log")
    op.drop_column("audit_log", "parent_id")
    op.drop_column("invoice", "payment_date")
    op.drop_column("policy", "additional_costs")
    op.drop_column("policy", "tax_rate")
