from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from brokerdesk.core.database import Base


class NumberSequence(Base):
    """Monotonic counter backing human-facing ticket and claim numbers."""

    __tablename__ = "number_sequence"

    name: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
