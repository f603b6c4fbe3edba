from __future__ import annotations

import logging

from hashids import Hashids
from sqlalchemy import select
from sqlalchemy.orm import Session

from brokerdesk.core.config import get_settings
from brokerdesk.metrics import observe_sequence_issued
from brokerdesk.models.sequence import NumberSequence


logger = logging.getLogger("brokerdesk.numbering")

NUMBER_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
TICKET_PREFIX = "TKT_"
CLAIM_PREFIX = "RECL_"
TICKET_SEQUENCE = "ticket"
CLAIM_SEQUENCE = "claim"


class SequenceCodec:
    """Reversible presentation encoding for sequence values. Not a secret."""

    def __init__(self, prefix: str, salt: str, min_length: int = 8) -> None:
        self.prefix = prefix
        self._hashids = Hashids(salt=salt, min_length=min_length, alphabet=NUMBER_ALPHABET)

    def encode(self, value: int) -> str:
        if value < 1:
            raise ValueError("sequence value must be positive")
        return f"{self.prefix}{self._hashids.encode(value)}"

    def decode(self, number: str) -> int:
        if not number.startswith(self.prefix):
            raise ValueError(f"number must start with {self.prefix}")
        decoded = self._hashids.decode(number[len(self.prefix):])
        if len(decoded) != 1:
            raise ValueError("number is not a valid encoded sequence")
        return int(decoded[0])


def ticket_codec() -> SequenceCodec:
    settings = get_settings()
    return SequenceCodec(TICKET_PREFIX, settings.ticket_number_salt, settings.number_min_length)


def claim_codec() -> SequenceCodec:
    settings = get_settings()
    return SequenceCodec(CLAIM_PREFIX, settings.claim_number_salt, settings.number_min_length)


def next_sequence_value(session: Session, name: str) -> int:
    """Increment the named counter under a row lock inside the caller's transaction."""

    row = session.scalar(select(NumberSequence).where(NumberSequence.name == name).with_for_update())
    if row is None:
        row = NumberSequence(name=name, last_value=0)
        session.add(row)
        session.flush()
    row.last_value += 1
    session.flush()
    observe_sequence_issued(name)
    logger.debug("sequence.issued", extra={"resource": name, "resource_id": row.last_value})
    return row.last_value
