from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brokerdesk.business.clients.models import Client
from brokerdesk.business.insurers.models import Insurer
from brokerdesk.core.database import Base, utcnow


class InvoiceStatus(StrEnum):
    PENDING = "PENDING"
    VALIDATED = "VALIDATED"
    DISCREPANCY = "DISCREPANCY"
    CANCELLED = "CANCELLED"


class PaymentStatus(StrEnum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"


class Invoice(Base):
    __tablename__ = "invoice"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    insurer_invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
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
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=InvoiceStatus.PENDING)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentStatus.PENDING_PAYMENT)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    billing_period: Mapped[str | None] = mapped_column(String(7), nullable=True)
    issue_date: Mapped[date] = mapped_column(Date(), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    payment_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    client: Mapped[Client] = relationship("Client")
    insurer: Mapped[Insurer] = relationship("Insurer")

    __table_args__ = (
        UniqueConstraint("insurer_id", "insurer_invoice_number", name="uq_invoice_insurer_number"),
        Index("ix_invoice_client_status", "client_id", "status"),
        Index("ix_invoice_issue_date", "issue_date"),
    )
