"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from complaint_desk.db.base import Base
from complaint_desk.db.models.common import utcnow

if TYPE_CHECKING:
    from complaint_desk.db.models import Complaint


class Notification(Base):
    """
    Audit record of one outbound message attempt.

    One row per dispatch attempt (retries create new rows). Written once with the
    final outcome and never updated.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notif_complaint_type", "complaint_id", "type"),
        Index("idx_notif_recipient_created", "recipient", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )

    recipient: Mapped[str] = mapped_column(String(20), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # pending | sent | failed
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    external_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    complaint: Mapped["Complaint"] = relationship(back_populates="notifications")
