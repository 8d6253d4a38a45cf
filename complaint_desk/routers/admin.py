"""Admin endpoints: complaint oversight, assignment and billing amendments."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from complaint_desk.core.deps import (
    get_db,
    get_messaging_channel,
    get_photo_storage,
    require_admin,
)
from complaint_desk.routers.common import page_meta
from complaint_desk.schemas.auth import AdminActor
from complaint_desk.schemas.billing import (
    BillingListResponse,
    BillingRecordResponse,
    BillingUpdateRequest,
)
from complaint_desk.schemas.complaint import (
    AssignComplaintRequest,
    ComplaintListResponse,
    ComplaintResponse,
    NotificationListResponse,
    NotificationRead,
)
from complaint_desk.services import billing_service, complaint_service
from complaint_desk.services.messaging_channel import MessagingChannel
from complaint_desk.services.photo_storage import PhotoStorage
from complaint_desk.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/admin", tags=["admin"])


# =============================================================================
# Complaints
# =============================================================================

@router.get("/complaints", response_model=ComplaintListResponse)
def list_complaints(
    status: str | None = Query(None),
    priority: str | None = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    _: AdminActor = Depends(require_admin),
):
    complaints, total = complaint_service.list_all(
        db, pagination, status=status, priority=priority
    )
    return ComplaintListResponse(
        complaints=[complaint_service.to_complaint_read(c) for c in complaints],
        pagination=page_meta(total, pagination),
    )


@router.post("/complaints/assign", response_model=ComplaintResponse)
def assign_complaint(
    data: AssignComplaintRequest,
    db: Session = Depends(get_db),
    channel: MessagingChannel = Depends(get_messaging_channel),
    actor: AdminActor = Depends(require_admin),
):
    """Assign a pending complaint to an active technician."""
    complaint = complaint_service.assign_complaint(
        db, channel, actor, data.complaint_id, data.technician_id
    )
    return ComplaintResponse(
        message="Complaint assigned successfully",
        complaint=complaint_service.to_complaint_read(complaint),
    )


@router.get("/complaints/{complaint_id}", response_model=ComplaintResponse)
def get_complaint(
    complaint_id: UUID,
    db: Session = Depends(get_db),
    actor: AdminActor = Depends(require_admin),
):
    complaint = complaint_service.get_for_actor(db, actor, complaint_id)
    return ComplaintResponse(complaint=complaint_service.to_complaint_read(complaint))


@router.get("/complaints/{complaint_id}/notifications", response_model=NotificationListResponse)
def list_notifications(
    complaint_id: UUID,
    db: Session = Depends(get_db),
    _: AdminActor = Depends(require_admin),
):
    """Delivery audit trail for a complaint, oldest first."""
    notifications = complaint_service.list_notifications(db, complaint_id)
    return NotificationListResponse(
        notifications=[NotificationRead.model_validate(n) for n in notifications],
    )


# =============================================================================
# Billing
# =============================================================================

@router.get("/billing", response_model=BillingListResponse)
def list_billing_records(
    page: str | None = Query(None),
    limit: str | None = Query(None),
    db: Session = Depends(get_db),
    _: AdminActor = Depends(require_admin),
):
    records, total, pagination = billing_service.list_all(db, page, limit)
    return BillingListResponse(
        records=[billing_service.to_billing_read(r) for r in records],
        pagination=page_meta(total, pagination),
    )


@router.get("/billing/{record_id}", response_model=BillingRecordResponse)
def get_billing_record(
    record_id: UUID,
    db: Session = Depends(get_db),
    _: AdminActor = Depends(require_admin),
):
    record = billing_service.get_record(db, record_id)
    return BillingRecordResponse(record=billing_service.to_billing_read(record))


@router.put("/billing/{record_id}", response_model=BillingRecordResponse)
def update_billing_record(
    record_id: UUID,
    data: BillingUpdateRequest,
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    actor: AdminActor = Depends(require_admin),
):
    """Replace flags and materials; rows keep their bill photo by ``row_id``."""
    record = billing_service.update_by_admin(
        db,
        storage,
        actor,
        record_id,
        is_complaint_resolved=data.is_complaint_resolved,
        materials_used=data.materials_used,
        materials=data.materials,
    )
    return BillingRecordResponse(
        message="Billing record updated",
        record=billing_service.to_billing_read(record),
    )
