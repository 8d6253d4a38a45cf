"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from complaint_desk.db.base import Base
from complaint_desk.db.models.common import utcnow

if TYPE_CHECKING:
    from complaint_desk.db.models import Admin, Complaint, Technician


class BillingRecord(Base):
    """
    Materials reconciliation for a complaint (at most one per complaint).

    ``materials`` holds ``{"row_id", "name", "quantity", "price", "bill_photo"}``
    dicts; ``bill_photo`` is ``None`` or a stored-photo dict. The list is empty
    whenever ``materials_used`` is false.
    """

    __tablename__ = "billing_records"
    __table_args__ = (Index("idx_billing_technician_submitted", "technician_id", "submitted_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("complaints.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    technician_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("technicians.id", ondelete="RESTRICT"), nullable=False
    )

    # Technician's self-report, independent of complaint.status
    is_complaint_resolved: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    materials_used: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    materials: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    submitted_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_by_admin_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_admin_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    # Relationships
    complaint: Mapped["Complaint"] = relationship()
    technician: Mapped["Technician"] = relationship()
    updated_by_admin: Mapped["Admin | None"] = relationship()

    @property
    def total_amount(self) -> Decimal:
        """Sum of quantity x price across materials."""
        total = Decimal("0")
        for material in self.materials or []:
            quantity = Decimal(str(material.get("quantity") or 0))
            price = Decimal(str(material.get("price") or 0))
            total += quantity * price
        return total
