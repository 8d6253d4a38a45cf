"""Auto-assignment of unattended complaints to the default technician."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from complaint_desk.db.enums import ComplaintStatus
from complaint_desk.db.models import Complaint, Technician
from complaint_desk.db.models.common import utcnow
from complaint_desk.services import notification_dispatcher
from complaint_desk.services.messaging_channel import MessagingChannel
from complaint_desk.utils.normalization import LOCAL_NUMBER_LENGTH, normalize_local_number

logger = logging.getLogger(__name__)

REASON_ALREADY_ASSIGNED = "already_assigned"
REASON_MISSING_DEFAULT_PHONE = "missing_default_phone"
REASON_TECHNICIAN_NOT_FOUND = "technician_not_found"


@dataclass(frozen=True)
class AutoAssignmentResult:
    assigned: bool
    reason: str | None = None
    technician_id: UUID | None = None

    def to_dict(self) -> dict:
        return {
            "assigned": self.assigned,
            "reason": self.reason,
            "technician_id": str(self.technician_id) if self.technician_id else None,
        }


class AutoAssignmentPolicy:
    """
    Routes a freshly created, unassigned complaint to the default technician.

    The target phone number is fixed at construction. The policy never raises for
    the expected no-op cases; it reports why nothing happened instead.
    """

    def __init__(self, default_phone: str | None):
        self.default_phone = normalize_local_number(default_phone)

    def resolve_technician(self, db: Session) -> Technician | None:
        return (
            db.query(Technician)
            .filter(
                Technician.phone_number == self.default_phone,
                Technician.is_active.is_(True),
            )
            .first()
        )

    def apply(
        self,
        db: Session,
        complaint: Complaint,
        channel: MessagingChannel,
    ) -> AutoAssignmentResult:
        if complaint.assigned_technician_id or complaint.status != ComplaintStatus.PENDING.value:
            return AutoAssignmentResult(assigned=False, reason=REASON_ALREADY_ASSIGNED)

        if len(self.default_phone) != LOCAL_NUMBER_LENGTH:
            logger.info("Auto-assignment skipped complaint=%s reason=%s",
                        complaint.complaint_number, REASON_MISSING_DEFAULT_PHONE)
            return AutoAssignmentResult(assigned=False, reason=REASON_MISSING_DEFAULT_PHONE)

        technician = self.resolve_technician(db)
        if technician is None:
            logger.info("Auto-assignment skipped complaint=%s reason=%s",
                        complaint.complaint_number, REASON_TECHNICIAN_NOT_FOUND)
            return AutoAssignmentResult(assigned=False, reason=REASON_TECHNICIAN_NOT_FOUND)

        now = utcnow()
        result = db.execute(
            update(Complaint)
            .where(
                Complaint.id == complaint.id,
                Complaint.status == ComplaintStatus.PENDING.value,
                Complaint.assigned_technician_id.is_(None),
            )
            .values(
                status=ComplaintStatus.ASSIGNED.value,
                assigned_technician_id=technician.id,
                assigned_by_admin_id=None,
                assigned_at=now,
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            db.rollback()
            return AutoAssignmentResult(assigned=False, reason=REASON_ALREADY_ASSIGNED)
        db.commit()
        db.refresh(complaint)

        logger.info(
            "Complaint auto-assigned complaint=%s technician=%s",
            complaint.complaint_number,
            technician.id,
        )
        notification_dispatcher.notify_default_technician(db, channel, complaint, technician)
        return AutoAssignmentResult(assigned=True, technician_id=technician.id)
