from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brokerdesk.business.affiliates.models import Affiliate
from brokerdesk.business.clients.models import Client
from brokerdesk.business.insurers.models import Insurer
from brokerdesk.core.database import Base, utcnow


class PolicyStatus(StrEnum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class Policy(Base):
    __tablename__ = "policy"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    policy_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("client.id", ondelete="RESTRICT"),
        nullable=False,
    )
    insurer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("insurer.id", ondelete="RESTRICT"),
        nullable=False,
    )
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=PolicyStatus.PENDING)
    start_date: Mapped[date] = mapped_column(Date(), nullable=False)
    end_date: Mapped[date] = mapped_column(Date(), nullable=False)
    amb_copay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    hosp_copay: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    maternity: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    t_premium: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tplus1_premium: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tplusf_premium: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tax_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 4), nullable=True)
    additional_costs: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    client: Mapped[Client] = relationship("Client")
    insurer: Mapped[Insurer] = relationship("Insurer")

    __table_args__ = (
        Index("ix_policy_client_status", "client_id", "status"),
        Index("ix_policy_insurer", "insurer_id"),
    )


class PolicyAffiliate(Base):
    __tablename__ = "policy_affiliate"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    policy_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("policy.id", ondelete="CASCADE"),
        nullable=False,
    )
    affiliate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("affiliate.id", ondelete="CASCADE"),
        nullable=False,
    )
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    affiliate: Mapped[Affiliate] = relationship("Affiliate")

    __table_args__ = (
        UniqueConstraint("policy_id", "affiliate_id", name="uq_policy_affiliate_pair"),
        Index("ix_policy_affiliate_affiliate", "affiliate_id", "is_active"),
    )
