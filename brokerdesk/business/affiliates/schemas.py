from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import EmailStr, Field

from brokerdesk.business.affiliates.models import Affiliate, AffiliateType, CoverageType
from brokerdesk.platform.pagination import PageMeta
from brokerdesk.platform.schemas import ApiModel, StripInput, StripPatch, reject_null


class AffiliateCreate(StripInput):
    client_id: UUID
    first_name: str = Field(min_length=2, max_length=200)
    last_name: str = Field(min_length=2, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    date_of_birth: date | None = None
    document_type: str | None = Field(default=None, max_length=20)
    document_number: str | None = Field(default=None, min_length=1, max_length=20)
    affiliate_type: AffiliateType
    coverage_type: CoverageType | None = None
    primary_affiliate_id: UUID | None = None
    is_active: bool = True


class AffiliateUpdate(StripPatch):
    first_name: str | None = Field(default=None, min_length=2, max_length=200)
    last_name: str | None = Field(default=None, min_length=2, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    date_of_birth: date | None = None
    document_type: str | None = Field(default=None, max_length=20)
    document_number: str | None = Field(default=None, min_length=1, max_length=20)
    affiliate_type: AffiliateType | None = None
    coverage_type: CoverageType | None = None
    primary_affiliate_id: UUID | None = None
    is_active: bool | None = None

    check_not_null = reject_null("first_name", "last_name", "affiliate_type", "is_active")


class AffiliateRead(ApiModel):
    id: UUID
    client_id: UUID
    client_name: str
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    date_of_birth: date | None
    document_type: str | None
    document_number: str | None
    affiliate_type: AffiliateType
    coverage_type: CoverageType | None
    primary_affiliate_id: UUID | None
    primary_affiliate_first_name: str | None
    primary_affiliate_last_name: str | None
    user_id: UUID | None
    has_user_account: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, affiliate: Affiliate) -> AffiliateRead:
        primary = affiliate.primary_affiliate
        return cls(
            id=affiliate.id,
            client_id=affiliate.client_id,
            client_name=affiliate.client.name,
            first_name=affiliate.first_name,
            last_name=affiliate.last_name,
            email=affiliate.email,
            phone=affiliate.phone,
            date_of_birth=affiliate.date_of_birth,
            document_type=affiliate.document_type,
            document_number=affiliate.document_number,
            affiliate_type=AffiliateType(affiliate.affiliate_type),
            coverage_type=CoverageType(affiliate.coverage_type) if affiliate.coverage_type else None,
            primary_affiliate_id=affiliate.primary_affiliate_id,
            primary_affiliate_first_name=primary.first_name if primary is not None else None,
            primary_affiliate_last_name=primary.last_name if primary is not None else None,
            user_id=affiliate.user_id,
            has_user_account=affiliate.user_id is not None,
            is_active=affiliate.is_active,
            created_at=affiliate.created_at,
            updated_at=affiliate.updated_at,
        )


class AffiliateListResponse(ApiModel):
    affiliates: list[AffiliateRead]
    pagination: PageMeta


class AffiliateOwnerRead(ApiModel):
    id: UUID
    first_name: str
    last_name: str
    document_number: str | None
    coverage_type: CoverageType | None


class AffiliateOwnersResponse(ApiModel):
    owners: list[AffiliateOwnerRead]
