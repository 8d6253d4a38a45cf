"""Client complaint endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from complaint_desk.core.deps import (
    get_current_actor,
    get_db,
    get_photo_storage,
    require_client,
)
from complaint_desk.routers.common import page_meta, parse_key_list
from complaint_desk.schemas.auth import Actor, ClientActor
from complaint_desk.schemas.complaint import (
    ComplaintListResponse,
    ComplaintResponse,
    MessageResponse,
)
from complaint_desk.services import complaint_service
from complaint_desk.services.photo_storage import PhotoStorage
from complaint_desk.utils.file_upload import read_uploads
from complaint_desk.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/complaints", tags=["complaints"])


@router.post("", response_model=ComplaintResponse, status_code=201)
async def create_complaint(
    title: str | None = Form(None),
    description: str | None = Form(None),
    location: str | None = Form(None),
    priority: str | None = Form(None),
    photos: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    actor: ClientActor = Depends(require_client),
):
    """Raise a complaint with up to five evidence photos."""
    uploads = await read_uploads(photos)
    complaint = complaint_service.create_complaint(
        db,
        storage,
        actor,
        title=title,
        description=description,
        location=location,
        priority=priority,
        photos=uploads,
    )
    return ComplaintResponse(
        message="Complaint created successfully",
        complaint=complaint_service.to_complaint_read(complaint),
    )


@router.get("/my", response_model=ComplaintListResponse)
def list_my_complaints(
    status: str | None = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    actor: ClientActor = Depends(require_client),
):
    complaints, total = complaint_service.list_client_complaints(
        db, actor.id, pagination, status=status
    )
    return ComplaintListResponse(
        complaints=[complaint_service.to_complaint_read(c) for c in complaints],
        pagination=page_meta(total, pagination),
    )


@router.get("/{complaint_id}", response_model=ComplaintResponse)
def get_complaint(
    complaint_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    complaint = complaint_service.get_for_actor(db, actor, complaint_id)
    return ComplaintResponse(complaint=complaint_service.to_complaint_read(complaint))


@router.put("/{complaint_id}", response_model=ComplaintResponse)
async def update_complaint(
    complaint_id: UUID,
    title: str | None = Form(None),
    description: str | None = Form(None),
    location: str | None = Form(None),
    priority: str | None = Form(None),
    removed_photos: list[str] | None = Form(None),
    photos: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    actor: ClientActor = Depends(require_client),
):
    """Edit a pending complaint; ``removed_photos`` lists storage keys to drop."""
    uploads = await read_uploads(photos)
    complaint = complaint_service.update_pending(
        db,
        storage,
        actor,
        complaint_id,
        title=title,
        description=description,
        location=location,
        priority=priority,
        removed_photos=parse_key_list(removed_photos),
        photos=uploads,
    )
    return ComplaintResponse(
        message="Complaint updated successfully",
        complaint=complaint_service.to_complaint_read(complaint),
    )


@router.delete("/{complaint_id}", response_model=MessageResponse)
def delete_complaint(
    complaint_id: UUID,
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    actor: ClientActor = Depends(require_client),
):
    complaint_service.delete_pending(db, storage, actor, complaint_id)
    return MessageResponse(message="Complaint deleted successfully")
