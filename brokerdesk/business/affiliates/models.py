from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import StrEnum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brokerdesk.business.clients.models import Client
from brokerdesk.core.database import Base, utcnow


class AffiliateType(StrEnum):
    OWNER = "OWNER"
    DEPENDENT = "DEPENDENT"


class CoverageType(StrEnum):
    T = "T"
    TPLUS1 = "TPLUS1"
    TPLUSF = "TPLUSF"


class Affiliate(Base):
    __tablename__ = "affiliate"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("client.id", ondelete="RESTRICT"),
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(String(200), nullable=False)
    last_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date(), nullable=True)
    document_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    document_number: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)
    affiliate_type: Mapped[str] = mapped_column(String(16), nullable=False)
    coverage_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    primary_affiliate_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("affiliate.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("app_user.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    client: Mapped[Client] = relationship("Client")
    primary_affiliate: Mapped[Affiliate | None] = relationship("Affiliate", remote_side=[id])

    __table_args__ = (
        Index("ix_affiliate_client_type", "client_id", "affiliate_type", "is_active"),
        Index("ix_affiliate_primary", "primary_affiliate_id"),
        Index("ix_affiliate_names", "last_name", "first_name"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
