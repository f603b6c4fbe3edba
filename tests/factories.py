from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from jose import jwt
from sqlalchemy.orm import Session

from brokerdesk.authz.models import User, UserClient
from brokerdesk.authz.seed import ensure_roles
from brokerdesk.business.affiliates.models import Affiliate, AffiliateType
from brokerdesk.business.claims.models import Claim, ClaimStatus
from brokerdesk.business.clients.models import Client
from brokerdesk.business.insurers.models import Insurer
from brokerdesk.business.invoices.models import Invoice, InvoiceStatus
from brokerdesk.business.policies.models import Policy, PolicyAffiliate, PolicyStatus
from brokerdesk.core.config import get_settings
from brokerdesk.platform.numbering import CLAIM_SEQUENCE, claim_codec, next_sequence_value
from brokerdesk.platform.security.roles import Role


def issue_token(user_id: uuid.UUID | str, **claims: object) -> str:
    settings = get_settings()
    return jwt.encode({"sub": str(user_id), **claims}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user.id)}"}


class Seed:
    """Builds rows directly in the test session."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.roles = ensure_roles(session)
        self._counter = 0

    @staticmethod
    def headers(user: User) -> dict[str, str]:
        return auth_headers(user)

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def user(
        self,
        role: Role | None,
        *,
        email: str | None = None,
        name: str | None = None,
        client_ids: Iterable[uuid.UUID] = (),
        is_active: bool = True,
    ) -> User:
        n = self._next()
        user = User(
            email=email or f"user{n}@example.com",
            name=name or f"User {n}",
            role_id=self.roles[role].id if role is not None else None,
            is_active=is_active,
        )
        self.session.add(user)
        self.session.flush()
        for client_id in client_ids:
            self.session.add(UserClient(user_id=user.id, client_id=client_id))
        self.session.commit()
        return user

    def client(self, name: str | None = None, *, tax_id: str | None = None, is_active: bool = True) -> Client:
        n = self._next()
        client = Client(name=name or f"Client {n}", tax_id=tax_id or f"TAX{n:05d}", is_active=is_active)
        self.session.add(client)
        self.session.commit()
        return client

    def insurer(self, name: str | None = None) -> Insurer:
        n = self._next()
        insurer = Insurer(name=name or f"Insurer {n}", code=f"INS{n}")
        self.session.add(insurer)
        self.session.commit()
        return insurer

    def affiliate(
        self,
        client: Client,
        *,
        first_name: str = "Ana",
        last_name: str | None = None,
        primary: Affiliate | None = None,
        user: User | None = None,
        email: str | None = None,
        is_active: bool = True,
    ) -> Affiliate:
        n = self._next()
        affiliate = Affiliate(
            client_id=client.id,
            first_name=first_name,
            last_name=last_name or f"Person{n}",
            email=email,
            affiliate_type=AffiliateType.DEPENDENT if primary is not None else AffiliateType.OWNER,
            primary_affiliate_id=primary.id if primary is not None else None,
            user_id=user.id if user is not None else None,
            is_active=is_active,
        )
        self.session.add(affiliate)
        self.session.commit()
        return affiliate

    def policy(
        self,
        client: Client,
        insurer: Insurer,
        *,
        status: PolicyStatus = PolicyStatus.ACTIVE,
        end_date: date = date(2026, 12, 31),
    ) -> Policy:
        n = self._next()
        policy = Policy(
            policy_number=f"POL-{n:04d}",
            client_id=client.id,
            insurer_id=insurer.id,
            status=status,
            start_date=date(2026, 1, 1),
            end_date=end_date,
        )
        self.session.add(policy)
        self.session.commit()
        return policy

    def claim(
        self,
        affiliate: Affiliate,
        created_by: User,
        *,
        status: ClaimStatus = ClaimStatus.SUBMITTED,
        submitted_date: date | None = None,
    ) -> Claim:
        sequence = next_sequence_value(self.session, CLAIM_SEQUENCE)
        claim = Claim(
            claim_sequence=sequence,
            claim_number=claim_codec().encode(sequence),
            client_id=affiliate.client_id,
            affiliate_id=affiliate.id,
            patient_id=affiliate.id,
            status=status,
            amount_submitted=Decimal("150.00"),
            submitted_date=submitted_date or date(2026, 3, 1),
            created_by_id=created_by.id,
        )
        self.session.add(claim)
        self.session.commit()
        return claim

    def member(self, policy: Policy, affiliate: Affiliate, *, is_active: bool = True) -> PolicyAffiliate:
        link = PolicyAffiliate(policy_id=policy.id, affiliate_id=affiliate.id, is_active=is_active)
        self.session.add(link)
        self.session.commit()
        return link

    def invoice(
        self,
        client: Client,
        insurer: Insurer,
        *,
        status: InvoiceStatus = InvoiceStatus.PENDING,
        insurer_invoice_number: str | None = None,
    ) -> Invoice:
        n = self._next()
        invoice = Invoice(
            invoice_number=f"F-{n:04d}",
            insurer_invoice_number=insurer_invoice_number or f"INS-F-{n:04d}",
            client_id=client.id,
            insurer_id=insurer.id,
            status=status,
            total_amount=Decimal("1200.00"),
            issue_date=date(2026, 3, 1),
        )
        self.session.add(invoice)
        self.session.commit()
        return invoice
