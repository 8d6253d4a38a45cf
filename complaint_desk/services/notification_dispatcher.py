"""Notification dispatch with a persisted audit trail.

Dispatch runs after the status change it reports has been committed. Whatever the
messaging channel does, one ``Notification`` row records the attempt and nothing
is raised back to the caller.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from complaint_desk.db.enums import NotificationStatus, NotificationType
from complaint_desk.db.models import Complaint, Notification, Technician
from complaint_desk.db.models.common import utcnow
from complaint_desk.services.messaging_channel import (
    TEMPLATE_ASSIGNMENT,
    MessagingChannel,
    SendResult,
)
from complaint_desk.utils.normalization import normalize_local_number

logger = logging.getLogger(__name__)


def dispatch(
    db: Session,
    channel: MessagingChannel,
    *,
    complaint: Complaint,
    recipient: str,
    notification_type: NotificationType,
    template_kind: str,
    variables: dict[str, str],
    message: str,
) -> SendResult:
    """Send one message and persist the outcome. Never raises."""
    try:
        result = channel.send(recipient, template_kind, variables)
    except Exception as exc:
        logger.warning(
            "Messaging channel raised complaint=%s template=%s error=%s",
            complaint.complaint_number,
            template_kind,
            exc,
        )
        result = SendResult(success=False, error=str(exc) or exc.__class__.__name__)

    notification = Notification(
        complaint_id=complaint.id,
        recipient=recipient,
        type=notification_type.value,
        message=message,
        status=(NotificationStatus.SENT if result.success else NotificationStatus.FAILED).value,
        external_message_id=result.external_message_id,
        error=None if result.success else (result.error or "Unknown delivery error"),
        sent_at=utcnow() if result.success else None,
    )
    try:
        db.add(notification)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to record notification complaint=%s type=%s",
            complaint.complaint_number,
            notification_type.value,
        )
        return result

    if not result.success:
        logger.warning(
            "Notification failed complaint=%s type=%s notification=%s",
            complaint.complaint_number,
            notification_type.value,
            notification.id,
        )
    return result


def _complaint_contact(complaint: Complaint) -> tuple[str, str]:
    """Client first, then the technician who raised the complaint."""
    if complaint.client and complaint.client.phone_number:
        return normalize_local_number(complaint.client.phone_number), complaint.client.name
    creator = complaint.created_by_technician
    if creator and creator.phone_number:
        return normalize_local_number(creator.phone_number), creator.name
    return "", ""


def notify_assignment(
    db: Session,
    channel: MessagingChannel,
    complaint: Complaint,
    technician: Technician,
) -> SendResult | None:
    """Tell the complaint's owner who it was assigned to."""
    recipient, name = _complaint_contact(complaint)
    if not recipient:
        logger.info(
            "Skipping assignment notification, no recipient complaint=%s",
            complaint.complaint_number,
        )
        return None
    return dispatch(
        db,
        channel,
        complaint=complaint,
        recipient=recipient,
        notification_type=NotificationType.ASSIGNMENT,
        template_kind=TEMPLATE_ASSIGNMENT,
        variables={"name": name, "complaint_number": complaint.complaint_number},
        message=f"Complaint {complaint.complaint_number} assigned to {technician.name}",
    )


def notify_default_technician(
    db: Session,
    channel: MessagingChannel,
    complaint: Complaint,
    technician: Technician,
) -> SendResult | None:
    """Tell the auto-assigned technician about the new complaint."""
    recipient = normalize_local_number(technician.phone_number)
    if not recipient:
        logger.info(
            "Skipping auto-assignment notification, no recipient complaint=%s",
            complaint.complaint_number,
        )
        return None
    return dispatch(
        db,
        channel,
        complaint=complaint,
        recipient=recipient,
        notification_type=NotificationType.ASSIGNMENT,
        template_kind=TEMPLATE_ASSIGNMENT,
        variables={"name": technician.name, "complaint_number": complaint.complaint_number},
        message=f"Complaint {complaint.complaint_number} assigned to {technician.name}",
    )


def notify_status_change(
    db: Session,
    channel: MessagingChannel,
    complaint: Complaint,
    status: str,
) -> SendResult | None:
    recipient, name = _complaint_contact(complaint)
    if not recipient:
        logger.info(
            "Skipping status notification, no recipient complaint=%s status=%s",
            complaint.complaint_number,
            status,
        )
        return None
    return dispatch(
        db,
        channel,
        complaint=complaint,
        recipient=recipient,
        notification_type=NotificationType.STATUS_UPDATE,
        template_kind=status,
        variables={"name": name, "complaint_number": complaint.complaint_number},
        message=f"Complaint {complaint.complaint_number} status changed to {status}",
    )


def list_for_complaint(db: Session, complaint_id: UUID) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.complaint_id == complaint_id)
        .order_by(Notification.created_at.asc())
        .all()
    )
