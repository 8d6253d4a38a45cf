"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from complaint_desk.db.base import Base


class SequenceCounter(Base):
    """
    Atomic counter for sequential ID generation (one series per store code).

    Uses INSERT...ON CONFLICT for atomic increment without race conditions.
    Rows are created lazily and never deleted.
    """

    __tablename__ = "sequence_counters"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    seq: Mapped[int] = mapped_column(BigInteger, server_default=text("0"), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
