"""Technician endpoints: store complaints, assignments, status and billing."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile as StarletteUploadFile

from complaint_desk.core.deps import (
    get_auto_assignment_policy,
    get_db,
    get_messaging_channel,
    get_photo_storage,
    require_technician,
)
from complaint_desk.core.errors import ValidationError
from complaint_desk.routers.common import page_meta
from complaint_desk.schemas.auth import TechnicianActor
from complaint_desk.schemas.billing import BillingListResponse, BillingRecordResponse
from complaint_desk.schemas.complaint import (
    AssignmentListResponse,
    AssignmentStats,
    AutoAssignmentRead,
    ComplaintListResponse,
    ComplaintResponse,
    ResolvedListResponse,
    TechnicianComplaintResponse,
)
from complaint_desk.services import billing_service, complaint_service
from complaint_desk.services.auto_assignment import AutoAssignmentPolicy
from complaint_desk.services.messaging_channel import MessagingChannel
from complaint_desk.services.photo_storage import PhotoStorage
from complaint_desk.utils.file_upload import PhotoUpload, read_upload, read_uploads
from complaint_desk.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/technician", tags=["technician"])

BILLING_FORM_FIELDS = ("complaint_id", "is_complaint_resolved", "materials_used", "materials")


# =============================================================================
# Complaints
# =============================================================================

@router.post("/complaints", response_model=TechnicianComplaintResponse, status_code=201)
async def create_store_complaint(
    title: str | None = Form(None),
    description: str | None = Form(None),
    location: str | None = Form(None),
    priority: str | None = Form(None),
    photos: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    channel: MessagingChannel = Depends(get_messaging_channel),
    policy: AutoAssignmentPolicy = Depends(get_auto_assignment_policy),
    actor: TechnicianActor = Depends(require_technician),
):
    """Raise a complaint on behalf of a store; it is routed to the default technician."""
    uploads = await read_uploads(photos)
    complaint, result = complaint_service.create_technician_complaint(
        db,
        storage,
        channel,
        policy,
        actor,
        title=title,
        description=description,
        location=location,
        priority=priority,
        photos=uploads,
    )
    return TechnicianComplaintResponse(
        message="Complaint created successfully",
        complaint=complaint_service.to_complaint_read(complaint),
        auto_assignment=AutoAssignmentRead(**result.to_dict()),
    )


@router.get("/complaints/my", response_model=ComplaintListResponse)
def list_created_complaints(
    status: str | None = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    actor: TechnicianActor = Depends(require_technician),
):
    complaints, total = complaint_service.list_technician_created(
        db, actor.id, pagination, status=status
    )
    return ComplaintListResponse(
        complaints=[complaint_service.to_complaint_read(c) for c in complaints],
        pagination=page_meta(total, pagination),
    )


@router.get("/assignments", response_model=AssignmentListResponse)
def list_assignments(
    db: Session = Depends(get_db),
    actor: TechnicianActor = Depends(require_technician),
):
    """Active assignments (assigned and in-progress) with status counts."""
    complaints, stats = complaint_service.list_assignments(db, actor.id)
    return AssignmentListResponse(
        complaints=[complaint_service.to_complaint_read(c) for c in complaints],
        stats=AssignmentStats(**stats),
    )


@router.get("/assignments/resolved", response_model=ResolvedListResponse)
def list_resolved(
    db: Session = Depends(get_db),
    actor: TechnicianActor = Depends(require_technician),
):
    complaints = complaint_service.list_resolved(db, actor.id)
    return ResolvedListResponse(
        complaints=[complaint_service.to_complaint_read(c) for c in complaints],
    )


@router.patch("/complaints/{complaint_id}/status", response_model=ComplaintResponse)
async def update_status(
    complaint_id: UUID,
    status: str | None = Form(None),
    notes: str | None = Form(None),
    resolution_notes: str | None = Form(None),
    photos: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    channel: MessagingChannel = Depends(get_messaging_channel),
    actor: TechnicianActor = Depends(require_technician),
):
    """
    Advance an assigned complaint.

    assigned -> in-progress -> resolved. Resolving requires ``resolution_notes``
    and accepts resolution photos.
    """
    uploads = await read_uploads(photos)
    complaint = complaint_service.change_status(
        db,
        storage,
        channel,
        actor,
        complaint_id,
        status=status,
        notes=notes,
        resolution_notes=resolution_notes,
        photos=uploads,
    )
    return ComplaintResponse(
        message="Complaint status updated successfully",
        complaint=complaint_service.to_complaint_read(complaint),
    )


# =============================================================================
# Billing
# =============================================================================

async def _read_billing_request(request: Request) -> tuple[dict, list[PhotoUpload]]:
    """Split a billing submission into plain fields and bill photo files."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Invalid JSON body")
        if not isinstance(body, dict):
            raise ValidationError("Invalid JSON body")
        return {key: body.get(key) for key in BILLING_FORM_FIELDS}, []

    form = await request.form()
    fields: dict = {key: None for key in BILLING_FORM_FIELDS}
    files: list[PhotoUpload] = []
    for key, value in form.multi_items():
        if isinstance(value, StarletteUploadFile):
            if value.filename:
                files.append(await read_upload(value, field_name=key))
        elif key in fields:
            fields[key] = value
    return fields, files


@router.post("/billing", response_model=BillingRecordResponse, status_code=201)
async def create_billing_record(
    request: Request,
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    actor: TechnicianActor = Depends(require_technician),
):
    """
    Submit the billing record for an assigned complaint.

    Multipart fields: ``complaint_id``, ``is_complaint_resolved``,
    ``materials_used``, ``materials`` (JSON array of
    ``{name, quantity, price, bill_photo_field}``) plus one file per
    ``bill_photo_field`` token.
    """
    fields, files = await _read_billing_request(request)
    record = billing_service.create_billing_record(
        db,
        storage,
        actor,
        complaint_id=fields["complaint_id"],
        is_complaint_resolved=fields["is_complaint_resolved"],
        materials_used=fields["materials_used"],
        materials=fields["materials"],
        files=files,
    )
    return BillingRecordResponse(
        message="Billing record submitted",
        record=billing_service.to_billing_read(record),
    )


@router.get("/billing", response_model=BillingListResponse)
def list_billing_records(
    page: str | None = Query(None),
    limit: str | None = Query(None),
    db: Session = Depends(get_db),
    actor: TechnicianActor = Depends(require_technician),
):
    records, total, pagination = billing_service.list_for_technician(db, actor.id, page, limit)
    return BillingListResponse(
        records=[billing_service.to_billing_read(r) for r in records],
        pagination=page_meta(total, pagination),
    )
