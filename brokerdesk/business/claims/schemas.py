from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import Field

from brokerdesk.authz.models import User
from brokerdesk.business.affiliates.models import Affiliate, AffiliateType, CoverageType
from brokerdesk.business.claims.models import CareType, Claim, ClaimInvoice, ClaimStatus
from brokerdesk.business.policies.models import Policy
from brokerdesk.models.audit import AuditLog
from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictInput, StripInput, StripPatch, reject_null


class ClaimDateField(StrEnum):
    INCIDENT_DATE = "incidentDate"
    SUBMITTED_DATE = "submittedDate"
    SETTLEMENT_DATE = "settlementDate"


class ClaimCreate(StripInput):
    client_id: UUID
    affiliate_id: UUID
    patient_id: UUID
    policy_id: UUID | None = None
    care_type: CareType | None = None
    description: str | None = Field(default=None, max_length=2000)
    diagnosis_code: str | None = Field(default=None, max_length=20)
    diagnosis_description: str | None = Field(default=None, max_length=2000)
    amount_submitted: Decimal | None = Field(default=None, ge=0)
    incident_date: date | None = None
    submitted_date: date | None = None


class ClaimUpdate(StripPatch):
    status: ClaimStatus | None = None
    policy_id: UUID | None = None
    care_type: CareType | None = None
    description: str | None = Field(default=None, max_length=2000)
    diagnosis_code: str | None = Field(default=None, max_length=20)
    diagnosis_description: str | None = Field(default=None, max_length=2000)
    amount_submitted: Decimal | None = Field(default=None, ge=0)
    amount_approved: Decimal | None = Field(default=None, ge=0)
    amount_denied: Decimal | None = Field(default=None, ge=0)
    amount_unprocessed: Decimal | None = Field(default=None, ge=0)
    deductible_applied: Decimal | None = Field(default=None, ge=0)
    copay_applied: Decimal | None = Field(default=None, ge=0)
    incident_date: date | None = None
    submitted_date: date | None = None
    settlement_date: date | None = None
    settlement_number: str | None = Field(default=None, max_length=50)
    settlement_notes: str | None = Field(default=None, max_length=2000)
    business_days: int | None = Field(default=None, ge=0)
    reprocess_date: date | None = None
    reprocess_description: str | None = Field(default=None, max_length=2000)

    check_not_null = reject_null("status")


class ClaimRead(ApiModel):
    id: UUID
    claim_number: str
    client_id: UUID
    client_name: str
    affiliate_id: UUID
    affiliate_first_name: str
    affiliate_last_name: str
    patient_id: UUID
    patient_first_name: str
    patient_last_name: str
    policy_id: UUID | None
    policy_number: str | None
    status: ClaimStatus
    care_type: CareType | None
    description: str | None
    diagnosis_code: str | None
    diagnosis_description: str | None
    amount_submitted: Decimal | None
    amount_approved: Decimal | None
    amount_denied: Decimal | None
    amount_unprocessed: Decimal | None
    deductible_applied: Decimal | None
    copay_applied: Decimal | None
    incident_date: date | None
    submitted_date: date | None
    settlement_date: date | None
    settlement_number: str | None
    settlement_notes: str | None
    business_days: int | None
    reprocess_date: date | None
    reprocess_description: str | None
    created_by_id: UUID
    created_by_name: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, claim: Claim) -> ClaimRead:
        creator = claim.created_by
        return cls(
            id=claim.id,
            claim_number=claim.claim_number,
            client_id=claim.client_id,
            client_name=claim.client.name,
            affiliate_id=claim.affiliate_id,
            affiliate_first_name=claim.affiliate.first_name,
            affiliate_last_name=claim.affiliate.last_name,
            patient_id=claim.patient_id,
            patient_first_name=claim.patient.first_name,
            patient_last_name=claim.patient.last_name,
            policy_id=claim.policy_id,
            policy_number=claim.policy.policy_number if claim.policy is not None else None,
            status=ClaimStatus(claim.status),
            care_type=CareType(claim.care_type) if claim.care_type else None,
            description=claim.description,
            diagnosis_code=claim.diagnosis_code,
            diagnosis_description=claim.diagnosis_description,
            amount_submitted=claim.amount_submitted,
            amount_approved=claim.amount_approved,
            amount_denied=claim.amount_denied,
            amount_unprocessed=claim.amount_unprocessed,
            deductible_applied=claim.deductible_applied,
            copay_applied=claim.copay_applied,
            incident_date=claim.incident_date,
            submitted_date=claim.submitted_date,
            settlement_date=claim.settlement_date,
            settlement_number=claim.settlement_number,
            settlement_notes=claim.settlement_notes,
            business_days=claim.business_days,
            reprocess_date=claim.reprocess_date,
            reprocess_description=claim.reprocess_description,
            created_by_id=claim.created_by_id,
            created_by_name=(creator.name or creator.email) if creator is not None else None,
            created_at=claim.created_at,
            updated_at=claim.updated_at,
        )


class ClaimListResponse(ApiModel):
    claims: list[ClaimRead]
    pagination: PageMeta


class PatientRead(ApiModel):
    id: UUID
    first_name: str
    last_name: str
    affiliate_type: AffiliateType
    document_number: str | None

    @classmethod
    def from_model(cls, affiliate: Affiliate) -> PatientRead:
        return cls(
            id=affiliate.id,
            first_name=affiliate.first_name,
            last_name=affiliate.last_name,
            affiliate_type=AffiliateType(affiliate.affiliate_type),
            document_number=affiliate.document_number,
        )


class PatientsResponse(ApiModel):
    patients: list[PatientRead]


class ClaimInvoiceCreate(StrictInput):
    invoice_number: str = Field(min_length=1, max_length=100)
    provider_name: str = Field(min_length=1, max_length=200)
    amount_submitted: Decimal = Field(ge=0)


class ClaimInvoiceUpdate(StripPatch):
    invoice_number: str | None = Field(default=None, min_length=1, max_length=100)
    provider_name: str | None = Field(default=None, min_length=1, max_length=200)
    amount_submitted: Decimal | None = Field(default=None, ge=0)

    check_not_null = reject_null("invoice_number", "provider_name", "amount_submitted")


class ClaimInvoiceRead(ApiModel):
    id: UUID
    claim_id: UUID
    invoice_number: str
    provider_name: str
    amount_submitted: Decimal
    created_by_id: UUID
    created_by_name: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, invoice: ClaimInvoice) -> ClaimInvoiceRead:
        creator = invoice.created_by
        return cls(
            id=invoice.id,
            claim_id=invoice.claim_id,
            invoice_number=invoice.invoice_number,
            provider_name=invoice.provider_name,
            amount_submitted=invoice.amount_submitted,
            created_by_id=invoice.created_by_id,
            created_by_name=(creator.name or creator.email) if creator is not None else None,
            created_at=invoice.created_at,
        )


class ClaimInvoicesResponse(ApiModel):
    invoices: list[ClaimInvoiceRead]


class ClaimAuditLogRead(ApiModel):
    id: UUID
    action: str
    resource_type: str
    resource_id: str
    user_id: UUID | None
    user_name: str | None
    changes: dict[str, Any]
    metadata: dict[str, Any]
    correlation_id: str | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: AuditLog, user: User | None) -> ClaimAuditLogRead:
        return cls(
            id=row.id,
            action=row.action,
            resource_type=row.resource_type,
            resource_id=row.resource_id,
            user_id=row.user_id,
            user_name=(user.name or user.email) if user is not None else None,
            changes=row.changes,
            metadata=row.event_metadata,
            correlation_id=row.correlation_id,
            created_at=row.created_at,
        )


class ClaimAuditLogListResponse(ApiModel):
    audit_logs: list[ClaimAuditLogRead]
    pagination: PageMeta


class ClientLookupRead(ApiModel):
    id: UUID
    name: str
    tax_id: str


class ClientLookupResponse(ApiModel):
    clients: list[ClientLookupRead]


class AffiliateLookupRead(ApiModel):
    id: UUID
    first_name: str
    last_name: str
    document_number: str | None
    coverage_type: CoverageType | None


class AffiliateLookupResponse(ApiModel):
    affiliates: list[AffiliateLookupRead]


class AvailablePolicyRead(ApiModel):
    id: UUID
    policy_number: str
    type: str | None
    insurer_name: str
    start_date: date
    end_date: date

    @classmethod
    def from_model(cls, policy: Policy) -> AvailablePolicyRead:
        return cls(
            id=policy.id,
            policy_number=policy.policy_number,
            type=policy.type,
            insurer_name=policy.insurer.name,
            start_date=policy.start_date,
            end_date=policy.end_date,
        )


class AvailablePoliciesResponse(ApiModel):
    policies: list[AvailablePolicyRead]
