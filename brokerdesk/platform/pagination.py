from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from brokerdesk.core.errors import ValidationFailedError
from brokerdesk.platform.schemas import ApiModel


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, limit))


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @classmethod
    def build(cls, page: int | None = None, limit: int | None = None) -> PageRequest:
        resolved_page = DEFAULT_PAGE if page is None else page
        if resolved_page < 1:
            raise ValidationFailedError.for_field("page", "Page must be greater than or equal to 1")
        return cls(page=resolved_page, limit=clamp_limit(limit))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageMeta(ApiModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_more: bool

    @classmethod
    def compute(cls, total: int, request: PageRequest) -> PageMeta:
        total_pages = math.ceil(total / request.limit) if total > 0 else 0
        return cls(
            total=total,
            page=request.page,
            limit=request.limit,
            total_pages=total_pages,
            has_more=request.page * request.limit < total,
        )


def get_page_request(
    page: int = Query(default=DEFAULT_PAGE, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT),
) -> PageRequest:
    return PageRequest.build(page, limit)


def count_rows(session: Session, stmt: Select[Any]) -> int:
    subquery = stmt.order_by(None).subquery()
    return int(session.scalar(select(func.count()).select_from(subquery)) or 0)


def paginate(
    session: Session,
    stmt: Select[Any],
    request: PageRequest,
    order_by: Sequence[Any],
    *,
    tie_breaker: Any,
) -> tuple[list[Any], PageMeta]:
    """Count and fetch one window of ``stmt``; both queries share its WHERE clause."""

    total = count_rows(session, stmt)
    data_stmt = stmt.order_by(*order_by, tie_breaker).offset(request.offset).limit(request.limit)
    rows = list(session.scalars(data_stmt).all())
    return rows, PageMeta.compute(total, request)
