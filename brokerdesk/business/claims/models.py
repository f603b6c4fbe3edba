from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brokerdesk.authz.models import User
from brokerdesk.business.affiliates.models import Affiliate
from brokerdesk.business.clients.models import Client
from brokerdesk.business.policies.models import Policy
from brokerdesk.core.database import Base, utcnow


class ClaimStatus(StrEnum):
    DRAFT = "DRAFT"
    VALIDATION = "VALIDATION"
    SUBMITTED = "SUBMITTED"
    PENDING_INFO = "PENDING_INFO"
    RETURNED = "RETURNED"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"


class CareType(StrEnum):
    AMBULATORY = "AMBULATORY"
    HOSPITALIZATION = "HOSPITALIZATION"
    MATERNITY = "MATERNITY"
    EMERGENCY = "EMERGENCY"
    OTHER = "OTHER"


class Claim(Base):
    __tablename__ = "claim"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    claim_sequence: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    claim_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("client.id", ondelete="RESTRICT"),
        nullable=False,
    )
    affiliate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("affiliate.id", ondelete="RESTRICT"),
        nullable=False,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("affiliate.id", ondelete="RESTRICT"),
        nullable=False,
    )
    policy_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("policy.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ClaimStatus.SUBMITTED)
    care_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    diagnosis_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    diagnosis_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount_submitted: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    amount_approved: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    amount_denied: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    amount_unprocessed: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    deductible_applied: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    copay_applied: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    incident_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    submitted_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    settlement_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    settlement_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    settlement_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    business_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reprocess_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    reprocess_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("app_user.id", ondelete="RESTRICT"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    client: Mapped[Client] = relationship("Client")
    affiliate: Mapped[Affiliate] = relationship("Affiliate", foreign_keys=[affiliate_id])
    patient: Mapped[Affiliate] = relationship("Affiliate", foreign_keys=[patient_id])
    policy: Mapped[Policy | None] = relationship("Policy")
    created_by: Mapped[User] = relationship("User")

    __table_args__ = (
        Index("ix_claim_client_status", "client_id", "status"),
        Index("ix_claim_affiliate", "affiliate_id"),
        Index("ix_claim_created_at", "created_at"),
    )


class ClaimInvoice(Base):
    """A provider invoice backing the amount submitted on a claim."""

    __tablename__ = "claim_invoice"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    claim_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("claim.id", ondelete="CASCADE"),
        nullable=False,
    )
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False)
    provider_name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount_submitted: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("app_user.id", ondelete="RESTRICT"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    created_by: Mapped[User] = relationship("User")

    __table_args__ = (Index("ix_claim_invoice_claim", "claim_id", "created_at"),)
