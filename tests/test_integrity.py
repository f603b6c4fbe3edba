from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brokerdesk.business.clients.models import Client
from brokerdesk.core.errors import ConflictError
from brokerdesk.platform.integrity import commit_or_conflict, conflict_from_integrity


class _DriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def _integrity(message: str, sqlstate: str | None = None) -> IntegrityError:
    return IntegrityError("INSERT INTO client ...", {}, _DriverError(message, sqlstate))


def test_duplicate_tax_id_is_conflict(db_session: Session) -> None:
    db_session.add(Client(name="First", tax_id="DUP-1"))
    db_session.commit()

    db_session.add(Client(name="Second", tax_id="DUP-1"))
    with pytest.raises(ConflictError) as excinfo:
        commit_or_conflict(db_session, {"tax_id": "taxId"}, resource="Client")
    assert excinfo.value.details == {"field": "taxId"}


def test_not_null_failure_is_not_a_conflict(db_session: Session) -> None:
    db_session.add(Client(name=None, tax_id="NULL-NAME"))

    with pytest.raises(IntegrityError):
        commit_or_conflict(db_session, {"tax_id": "taxId"}, resource="Client")

    assert db_session.query(Client).count() == 0


def test_postgres_messages_map_by_sqlstate() -> None:
    unique = _integrity('duplicate key value violates unique constraint "client_tax_id_key"', "23505")
    conflict = conflict_from_integrity(unique, {"tax_id": "taxId"}, resource="Client")
    assert conflict is not None
    assert conflict.field == "taxId"

    not_null = _integrity('null value in column "tax_id" of relation "client" violates not-null constraint', "23502")
    assert conflict_from_integrity(not_null, {"tax_id": "taxId"}, resource="Client") is None


def test_unique_violation_on_unknown_column_is_not_mapped() -> None:
    exc = _integrity("UNIQUE constraint failed: client.email")
    assert conflict_from_integrity(exc, {"tax_id": "taxId"}, resource="Client") is None
