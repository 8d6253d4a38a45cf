"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Index, String, Text, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from complaint_desk.db.base import Base
from complaint_desk.db.models.common import utcnow

if TYPE_CHECKING:
    from complaint_desk.db.models import Admin, Client, Notification, Technician


class Complaint(Base):
    """
    Service complaint raised for a store and worked by a technician.

    Status only moves forward: pending -> assigned -> in-progress -> resolved.
    ``photos`` and ``resolution_photos`` are lists of
    ``{"url", "storage_key", "original_name", "uploaded_at"}`` dicts and are always
    replaced wholesale, never mutated in place.
    """

    __tablename__ = "complaints"
    __table_args__ = (
        Index("idx_complaints_client", "client_id", "created_at"),
        Index("idx_complaints_assignee_status", "assigned_technician_id", "status"),
        Index("idx_complaints_creator_tech", "created_by_technician_id"),
        Index("idx_complaints_status_created", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Human-readable CMP-<CODE>-<NNNNNN>; never reused
    complaint_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    store_code: Mapped[str] = mapped_column(String(3), nullable=False)
    priority: Mapped[str] = mapped_column(
        String(10), default="medium", server_default=text("'medium'"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default="pending", server_default=text("'pending'"), nullable=False
    )
    photos: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Creator (client or technician, matching creator_type)
    creator_type: Mapped[str] = mapped_column(String(20), nullable=False)
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    created_by_technician_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True
    )

    # Assignment (set together)
    assigned_technician_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True
    )
    assigned_by_admin_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime | None] = mapped_column(nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    technician_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Resolution proof
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolution_photos: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    # Relationships
    client: Mapped["Client | None"] = relationship(foreign_keys=[client_id])
    created_by_technician: Mapped["Technician | None"] = relationship(
        foreign_keys=[created_by_technician_id]
    )
    assigned_technician: Mapped["Technician | None"] = relationship(
        foreign_keys=[assigned_technician_id]
    )
    assigned_by: Mapped["Admin | None"] = relationship(foreign_keys=[assigned_by_admin_id])
    notifications: Mapped[list["Notification"]] = relationship(
        back_populates="complaint",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
