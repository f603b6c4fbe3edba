from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field

from brokerdesk.business.affiliates.models import AffiliateType
from brokerdesk.business.policies.models import Policy, PolicyAffiliate, PolicyStatus
from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StrictInput, StripPatch, reject_null


class PolicyCreate(StrictInput):
    policy_number: str = Field(min_length=1, max_length=50)
    client_id: UUID
    insurer_id: UUID
    type: str | None = Field(default=None, max_length=50)
    start_date: date
    end_date: date
    amb_copay: Decimal | None = Field(default=None, ge=0)
    hosp_copay: Decimal | None = Field(default=None, ge=0)
    maternity: Decimal | None = Field(default=None, ge=0)
    t_premium: Decimal | None = Field(default=None, ge=0)
    tplus1_premium: Decimal | None = Field(default=None, ge=0)
    tplusf_premium: Decimal | None = Field(default=None, ge=0)
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)
    additional_costs: Decimal | None = Field(default=None, ge=0)
    is_active: bool = True


class PolicyUpdate(StripPatch):
    policy_number: str | None = Field(default=None, min_length=1, max_length=50)
    type: str | None = Field(default=None, max_length=50)
    status: PolicyStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    amb_copay: Decimal | None = Field(default=None, ge=0)
    hosp_copay: Decimal | None = Field(default=None, ge=0)
    maternity: Decimal | None = Field(default=None, ge=0)
    t_premium: Decimal | None = Field(default=None, ge=0)
    tplus1_premium: Decimal | None = Field(default=None, ge=0)
    tplusf_premium: Decimal | None = Field(default=None, ge=0)
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)
    additional_costs: Decimal | None = Field(default=None, ge=0)
    is_active: bool | None = None

    check_not_null = reject_null("policy_number", "status", "start_date", "end_date", "is_active")


class PolicyRead(ApiModel):
    id: UUID
    policy_number: str
    client_id: UUID
    client_name: str
    insurer_id: UUID
    insurer_name: str
    type: str | None
    status: PolicyStatus
    start_date: date
    end_date: date
    amb_copay: Decimal | None
    hosp_copay: Decimal | None
    maternity: Decimal | None
    t_premium: Decimal | None
    tplus1_premium: Decimal | None
    tplusf_premium: Decimal | None
    tax_rate: Decimal | None
    additional_costs: Decimal | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, policy: Policy) -> PolicyRead:
        return cls(
            id=policy.id,
            policy_number=policy.policy_number,
            client_id=policy.client_id,
            client_name=policy.client.name,
            insurer_id=policy.insurer_id,
            insurer_name=policy.insurer.name,
            type=policy.type,
            status=PolicyStatus(policy.status),
            start_date=policy.start_date,
            end_date=policy.end_date,
            amb_copay=policy.amb_copay,
            hosp_copay=policy.hosp_copay,
            maternity=policy.maternity,
            t_premium=policy.t_premium,
            tplus1_premium=policy.tplus1_premium,
            tplusf_premium=policy.tplusf_premium,
            tax_rate=policy.tax_rate,
            additional_costs=policy.additional_costs,
            is_active=policy.is_active,
            created_at=policy.created_at,
            updated_at=policy.updated_at,
        )


class PolicyListResponse(ApiModel):
    policies: list[PolicyRead]
    pagination: PageMeta


class PolicyAffiliateAdd(StrictInput):
    affiliate_id: UUID


class PolicyAffiliateRead(ApiModel):
    id: UUID
    policy_id: UUID
    affiliate_id: UUID
    first_name: str
    last_name: str
    affiliate_type: AffiliateType
    document_number: str | None
    added_at: datetime
    removed_at: datetime | None
    is_active: bool

    @classmethod
    def from_model(cls, link: PolicyAffiliate) -> PolicyAffiliateRead:
        return cls(
            id=link.id,
            policy_id=link.policy_id,
            affiliate_id=link.affiliate_id,
            first_name=link.affiliate.first_name,
            last_name=link.affiliate.last_name,
            affiliate_type=AffiliateType(link.affiliate.affiliate_type),
            document_number=link.affiliate.document_number,
            added_at=link.added_at,
            removed_at=link.removed_at,
            is_active=link.is_active,
        )


class PolicyAffiliatesResponse(ApiModel):
    affiliates: list[PolicyAffiliateRead]
