"""Complaint lifecycle: creation, pending edits, assignment and status transitions.

Every state change is a conditional UPDATE guarded by the status the caller
observed, so a request that loses a race fails with a conflict instead of
overwriting. Notifications are sent only after the change is committed.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from complaint_desk.core.config import settings
from complaint_desk.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from complaint_desk.core.status_rules import is_allowed_transition
from complaint_desk.core.structured_logging import build_log_context
from complaint_desk.db.enums import (
    ACTIVE_ASSIGNMENT_STATUSES,
    DEFAULT_COMPLAINT_PRIORITY,
    ComplaintPriority,
    ComplaintStatus,
)
from complaint_desk.db.models import Complaint, Notification, Technician
from complaint_desk.db.models.common import utcnow
from complaint_desk.schemas.auth import Actor, AdminActor, ClientActor, TechnicianActor
from complaint_desk.schemas.complaint import ComplaintRead
from complaint_desk.services import notification_dispatcher
from complaint_desk.services.auto_assignment import AutoAssignmentPolicy, AutoAssignmentResult
from complaint_desk.services.complaint_identifier import generate_complaint_number
from complaint_desk.services.messaging_channel import MessagingChannel
from complaint_desk.services.photo_storage import (
    COMPLAINT_PHOTO_FOLDER,
    RESOLUTION_PHOTO_FOLDER,
    PhotoStorage,
    delete_photos,
    upload_photos,
    validate_photo,
    validate_photo_batch,
)
from complaint_desk.utils.file_upload import PhotoUpload
from complaint_desk.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

REASON_ASSIGNMENT_ERROR = "assignment_error"


# =============================================================================
# Input helpers
# =============================================================================

def _require_text(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required")
    return cleaned


def _parse_priority(value: str | None) -> str:
    if value is None or not str(value).strip():
        return DEFAULT_COMPLAINT_PRIORITY.value
    normalized = str(value).strip().lower()
    if not ComplaintPriority.has_value(normalized):
        raise ValidationError(f"Invalid priority: {value}")
    return normalized


def _parse_status_filter(value: str | None) -> str | None:
    if not value:
        return None
    normalized = value.strip().lower()
    if not ComplaintStatus.has_value(normalized):
        raise ValidationError(f"Invalid status value: {value}")
    return normalized


def _current_status(db: Session, complaint_id: UUID) -> str | None:
    return db.query(Complaint.status).filter(Complaint.id == complaint_id).scalar()


def to_complaint_read(complaint: Complaint) -> ComplaintRead:
    return ComplaintRead.model_validate(complaint)


# =============================================================================
# Queries
# =============================================================================

def get_complaint(db: Session, complaint_id: UUID) -> Complaint | None:
    return db.query(Complaint).filter(Complaint.id == complaint_id).first()


def get_for_actor(db: Session, actor: Actor, complaint_id: UUID) -> Complaint:
    """
    Load a complaint the actor is allowed to see.

    Clients see their own complaints, technicians see complaints assigned to them
    or raised by them, admins see everything. Anything else is reported as missing.
    """
    query = db.query(Complaint).filter(Complaint.id == complaint_id)
    if isinstance(actor, ClientActor):
        query = query.filter(Complaint.client_id == actor.id)
    elif isinstance(actor, TechnicianActor):
        query = query.filter(
            or_(
                Complaint.assigned_technician_id == actor.id,
                Complaint.created_by_technician_id == actor.id,
            )
        )
    complaint = query.first()
    if not complaint:
        raise NotFoundError("Complaint not found")
    return complaint


def list_client_complaints(
    db: Session,
    client_id: UUID,
    pagination: PaginationParams,
    status: str | None = None,
) -> tuple[list[Complaint], int]:
    query = db.query(Complaint).filter(Complaint.client_id == client_id)
    status_filter = _parse_status_filter(status)
    if status_filter:
        query = query.filter(Complaint.status == status_filter)
    return paginate_query(query.order_by(Complaint.created_at.desc()), pagination)


def list_technician_created(
    db: Session,
    technician_id: UUID,
    pagination: PaginationParams,
    status: str | None = None,
) -> tuple[list[Complaint], int]:
    query = db.query(Complaint).filter(Complaint.created_by_technician_id == technician_id)
    status_filter = _parse_status_filter(status)
    if status_filter:
        query = query.filter(Complaint.status == status_filter)
    return paginate_query(query.order_by(Complaint.created_at.desc()), pagination)


def list_all(
    db: Session,
    pagination: PaginationParams,
    status: str | None = None,
    priority: str | None = None,
) -> tuple[list[Complaint], int]:
    query = db.query(Complaint)
    status_filter = _parse_status_filter(status)
    if status_filter:
        query = query.filter(Complaint.status == status_filter)
    if priority:
        query = query.filter(Complaint.priority == _parse_priority(priority))
    return paginate_query(query.order_by(Complaint.created_at.desc()), pagination)


def list_assignments(db: Session, technician_id: UUID) -> tuple[list[Complaint], dict[str, int]]:
    """Active assignments for a technician plus per-status counts."""
    active_values = [s.value for s in ACTIVE_ASSIGNMENT_STATUSES]
    complaints = (
        db.query(Complaint)
        .filter(
            Complaint.assigned_technician_id == technician_id,
            Complaint.status.in_(active_values),
        )
        .order_by(Complaint.assigned_at.desc())
        .all()
    )
    completed = (
        db.query(func.count(Complaint.id))
        .filter(
            Complaint.assigned_technician_id == technician_id,
            Complaint.status == ComplaintStatus.RESOLVED.value,
        )
        .scalar()
        or 0
    )
    stats = {
        "total": len(complaints) + completed,
        "assigned": sum(1 for c in complaints if c.status == ComplaintStatus.ASSIGNED.value),
        "in_progress": sum(1 for c in complaints if c.status == ComplaintStatus.IN_PROGRESS.value),
        "completed": completed,
    }
    return complaints, stats


def list_resolved(db: Session, technician_id: UUID) -> list[Complaint]:
    return (
        db.query(Complaint)
        .filter(
            Complaint.assigned_technician_id == technician_id,
            Complaint.status == ComplaintStatus.RESOLVED.value,
        )
        .order_by(Complaint.completed_at.desc(), Complaint.updated_at.desc())
        .all()
    )


def list_notifications(db: Session, complaint_id: UUID) -> list[Notification]:
    if not get_complaint(db, complaint_id):
        raise NotFoundError("Complaint not found")
    return notification_dispatcher.list_for_complaint(db, complaint_id)


# =============================================================================
# Creation
# =============================================================================

def create_complaint(
    db: Session,
    storage: PhotoStorage,
    actor: ClientActor | TechnicianActor,
    *,
    title: str | None,
    description: str | None,
    location: str | None,
    priority: str | None = None,
    photos: list[PhotoUpload] | None = None,
) -> Complaint:
    """
    Create a pending complaint with its evidence photos.

    Photos are uploaded before the identifier is minted. If the upload batch or
    the insert fails, every photo stored by this call is deleted again.
    """
    clean_title = _require_text(title, "title")
    clean_description = _require_text(description, "description")
    clean_location = _require_text(location, "location")
    clean_priority = _parse_priority(priority)

    uploads = photos or []
    validate_photo_batch(uploads)
    stored = upload_photos(storage, uploads, COMPLAINT_PHOTO_FOLDER) if uploads else []

    try:
        complaint_number, store_code = generate_complaint_number(db, clean_location)
        complaint = Complaint(
            complaint_number=complaint_number,
            store_code=store_code,
            title=clean_title,
            description=clean_description,
            location=clean_location,
            priority=clean_priority,
            status=ComplaintStatus.PENDING.value,
            photos=stored,
            creator_type=actor.role.value,
        )
        if isinstance(actor, ClientActor):
            complaint.client_id = actor.id
        else:
            complaint.created_by_technician_id = actor.id
        db.add(complaint)
        db.commit()
    except Exception:
        db.rollback()
        delete_photos(storage, stored)
        raise

    db.refresh(complaint)
    logger.info(
        "Complaint created complaint=%s photos=%s",
        complaint.complaint_number,
        len(stored),
        extra=build_log_context(
            actor_id=str(actor.id),
            role=actor.role.value,
            complaint_id=str(complaint.id),
        ),
    )
    return complaint


def create_technician_complaint(
    db: Session,
    storage: PhotoStorage,
    channel: MessagingChannel,
    policy: AutoAssignmentPolicy,
    actor: TechnicianActor,
    **fields,
) -> tuple[Complaint, AutoAssignmentResult]:
    """Create a complaint on behalf of a store, then run auto-assignment."""
    complaint = create_complaint(db, storage, actor, **fields)
    try:
        result = policy.apply(db, complaint, channel)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Auto-assignment failed complaint=%s", complaint.complaint_number)
        result = AutoAssignmentResult(assigned=False, reason=REASON_ASSIGNMENT_ERROR)
    db.refresh(complaint)
    return complaint, result


# =============================================================================
# Pending-only edits
# =============================================================================

def _get_owned(db: Session, actor: ClientActor, complaint_id: UUID) -> Complaint:
    complaint = (
        db.query(Complaint)
        .filter(Complaint.id == complaint_id, Complaint.client_id == actor.id)
        .first()
    )
    if not complaint:
        raise NotFoundError("Complaint not found")
    return complaint


def update_pending(
    db: Session,
    storage: PhotoStorage,
    actor: ClientActor,
    complaint_id: UUID,
    *,
    title: str | None = None,
    description: str | None = None,
    location: str | None = None,
    priority: str | None = None,
    removed_photos: list[str] | None = None,
    photos: list[PhotoUpload] | None = None,
) -> Complaint:
    """Edit a complaint the client owns while it is still pending."""
    complaint = _get_owned(db, actor, complaint_id)
    if complaint.status != ComplaintStatus.PENDING.value:
        raise ConflictError(
            f"Complaint can only be updated while pending (current status: {complaint.status})"
        )

    values: dict = {}
    if title is not None:
        values["title"] = _require_text(title, "title")
    if description is not None:
        values["description"] = _require_text(description, "description")
    if location is not None:
        # The complaint number keeps the store code it was minted with
        values["location"] = _require_text(location, "location")
    if priority is not None:
        values["priority"] = _parse_priority(priority)

    removed_keys = {key for key in (removed_photos or []) if key}
    existing = list(complaint.photos or [])
    kept = [p for p in existing if p.get("storage_key") not in removed_keys]
    removed = [p for p in existing if p.get("storage_key") in removed_keys]

    uploads = photos or []
    limit = settings.MAX_COMPLAINT_PHOTOS
    if len(kept) + len(uploads) > limit:
        raise ValidationError(f"Maximum {limit} photos allowed per complaint")
    for upload in uploads:
        validate_photo(upload)

    stored = upload_photos(storage, uploads, COMPLAINT_PHOTO_FOLDER) if uploads else []
    if removed or stored:
        values["photos"] = kept + stored
    values["updated_at"] = utcnow()

    try:
        result = db.execute(
            update(Complaint)
            .where(
                Complaint.id == complaint.id,
                Complaint.status == ComplaintStatus.PENDING.value,
            )
            .values(**values)
        )
        if result.rowcount == 0:
            db.rollback()
            delete_photos(storage, stored)
            raise ConflictError("Complaint can only be updated while pending")
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        delete_photos(storage, stored)
        raise

    delete_photos(storage, removed)
    db.refresh(complaint)
    logger.info(
        "Complaint updated complaint=%s added=%s removed=%s",
        complaint.complaint_number,
        len(stored),
        len(removed),
    )
    return complaint


def delete_pending(
    db: Session,
    storage: PhotoStorage,
    actor: ClientActor,
    complaint_id: UUID,
) -> None:
    """Delete a pending complaint and its photos."""
    complaint = _get_owned(db, actor, complaint_id)
    if complaint.status != ComplaintStatus.PENDING.value:
        raise ConflictError(
            f"Complaint can only be deleted while pending (current status: {complaint.status})"
        )
    complaint_number = complaint.complaint_number
    photos = list(complaint.photos or [])

    result = db.execute(
        delete(Complaint).where(
            Complaint.id == complaint.id,
            Complaint.status == ComplaintStatus.PENDING.value,
        )
    )
    if result.rowcount == 0:
        db.rollback()
        raise ConflictError("Complaint can only be deleted while pending")

    # Row is locked by the pending delete; clear storage before it is committed
    delete_photos(storage, photos)
    db.commit()
    logger.info("Complaint deleted complaint=%s photos=%s", complaint_number, len(photos))


# =============================================================================
# Transitions
# =============================================================================

def assign_complaint(
    db: Session,
    channel: MessagingChannel,
    actor: AdminActor,
    complaint_id: UUID,
    technician_id: UUID,
) -> Complaint:
    """Admin assignment: pending -> assigned, then notify the complaint owner."""
    complaint = get_complaint(db, complaint_id)
    if not complaint:
        raise NotFoundError("Complaint not found")

    technician = (
        db.query(Technician)
        .filter(Technician.id == technician_id, Technician.is_active.is_(True))
        .first()
    )
    if not technician:
        raise NotFoundError("Technician not found or inactive")

    requested = ComplaintStatus.ASSIGNED.value
    if not is_allowed_transition(complaint.status, requested):
        raise InvalidTransitionError(complaint.status, requested)

    now = utcnow()
    result = db.execute(
        update(Complaint)
        .where(
            Complaint.id == complaint.id,
            Complaint.status == ComplaintStatus.PENDING.value,
        )
        .values(
            status=requested,
            assigned_technician_id=technician.id,
            assigned_by_admin_id=actor.id,
            assigned_at=now,
            updated_at=now,
        )
    )
    if result.rowcount == 0:
        db.rollback()
        raise InvalidTransitionError(_current_status(db, complaint.id) or complaint.status, requested)
    db.commit()
    db.refresh(complaint)

    logger.info(
        "Complaint assigned complaint=%s technician=%s",
        complaint.complaint_number,
        technician.id,
        extra=build_log_context(
            actor_id=str(actor.id),
            role=actor.role.value,
            complaint_id=str(complaint.id),
        ),
    )
    notification_dispatcher.notify_assignment(db, channel, complaint, technician)
    db.refresh(complaint)
    return complaint


def change_status(
    db: Session,
    storage: PhotoStorage,
    channel: MessagingChannel,
    actor: TechnicianActor,
    complaint_id: UUID,
    *,
    status: str | None,
    notes: str | None = None,
    resolution_notes: str | None = None,
    photos: list[PhotoUpload] | None = None,
) -> Complaint:
    """
    Technician-driven transition (assigned -> in-progress -> resolved).

    Resolving requires resolution notes and may carry resolution photos, which
    are uploaded all-or-nothing. The notification is attempted after commit and
    its outcome never affects the transition.
    """
    requested = _require_text(status, "status").lower()
    if not ComplaintStatus.has_value(requested):
        raise ValidationError(f"Invalid status value: {status}")

    complaint = get_complaint(db, complaint_id)
    if not complaint:
        raise NotFoundError("Complaint not found")

    current = complaint.status
    if not is_allowed_transition(current, requested):
        raise InvalidTransitionError(current, requested)
    if complaint.assigned_technician_id != actor.id:
        raise ForbiddenError("You can only update complaints assigned to you")

    resolving = requested == ComplaintStatus.RESOLVED.value
    clean_resolution_notes = (resolution_notes or "").strip()
    if resolving and not clean_resolution_notes:
        raise ValidationError("resolution_notes is required to resolve a complaint")

    uploads = photos or []
    if uploads and not resolving:
        raise ValidationError("Photos can only be attached when resolving a complaint")
    validate_photo_batch(uploads)

    now = utcnow()
    values: dict = {"status": requested, "updated_at": now}
    clean_notes = (notes or "").strip()
    if clean_notes:
        values["technician_notes"] = clean_notes
    if requested == ComplaintStatus.IN_PROGRESS.value:
        values["started_at"] = now

    stored: list[dict] = []
    if resolving:
        stored = upload_photos(storage, uploads, RESOLUTION_PHOTO_FOLDER) if uploads else []
        values.update(
            resolution_notes=clean_resolution_notes,
            resolution_photos=stored,
            resolved_at=now,
            completed_at=now,
        )

    try:
        result = db.execute(
            update(Complaint)
            .where(
                Complaint.id == complaint.id,
                Complaint.status == current,
                Complaint.assigned_technician_id == actor.id,
            )
            .values(**values)
        )
        if result.rowcount == 0:
            db.rollback()
            delete_photos(storage, stored)
            raise InvalidTransitionError(_current_status(db, complaint.id) or current, requested)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        delete_photos(storage, stored)
        raise

    db.refresh(complaint)
    logger.info(
        "Complaint status changed complaint=%s from=%s to=%s",
        complaint.complaint_number,
        current,
        requested,
        extra=build_log_context(
            actor_id=str(actor.id),
            role=actor.role.value,
            complaint_id=str(complaint.id),
        ),
    )
    notification_dispatcher.notify_status_change(db, channel, complaint, requested)
    db.refresh(complaint)
    return complaint
