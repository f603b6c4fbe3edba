from __future__ import annotations

import uuid
from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from brokerdesk.core.errors import NotFoundError
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.scope import ScopeDecision, client_scope_clause, ensure_allowed, resolve_client_scope


ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    resource = ""
    model: type[ModelT]
    affiliate_allowed = True

    def client_column(self) -> Any:
        return getattr(self.model, "client_id")

    def apply_scope_query(self, query: Select[Any], caller: Caller) -> Select[Any]:
        clause = client_scope_clause(
            caller,
            self.client_column(),
            resource=self.resource,
            affiliate_allowed=self.affiliate_allowed,
        )
        if clause is None:
            return query
        return query.where(clause)

    def decide(self, caller: Caller, row: ModelT) -> ScopeDecision:
        return resolve_client_scope(caller, getattr(row, "client_id"), affiliate_allowed=self.affiliate_allowed)

    def validate_read_scope(self, caller: Caller, row: ModelT) -> None:
        ensure_allowed(
            self.decide(caller, row),
            caller,
            resource=self.resource,
            resource_id=getattr(row, "id", None),
            not_found_message=self.not_found_message,
        )

    @property
    def not_found_message(self) -> str:
        return f"{self.resource.capitalize()} not found"

    def get(self, session: Session, row_id: uuid.UUID, *, options: tuple[Any, ...] = ()) -> ModelT | None:
        return session.get(self.model, row_id, options=list(options))

    def get_or_404(self, session: Session, row_id: uuid.UUID, *, options: tuple[Any, ...] = ()) -> ModelT:
        row = self.get(session, row_id, options=options)
        if row is None:
            raise NotFoundError(self.not_found_message)
        return row

    def get_scoped(
        self,
        session: Session,
        caller: Caller,
        row_id: uuid.UUID,
        *,
        options: tuple[Any, ...] = (),
    ) -> ModelT:
        row = self.get_or_404(session, row_id, options=options)
        self.validate_read_scope(caller, row)
        return row

    @staticmethod
    def apply_changes(row: ModelT, changes: dict[str, Any]) -> dict[str, Any]:
        """Set only the supplied attributes; returns their previous values."""

        before: dict[str, Any] = {}
        for key, value in changes.items():
            before[key] = getattr(row, key)
            setattr(row, key, value)
        return before
