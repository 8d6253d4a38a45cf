"""Pydantic schemas for complaints and their notification trail."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class PhotoRead(BaseModel):
    url: str
    storage_key: str
    original_name: str | None = None
    uploaded_at: str | None = None


class PartyRef(BaseModel):
    """Name and contact of a client, technician or admin."""

    id: UUID
    name: str
    phone_number: str | None = None

    model_config = {"from_attributes": True}


class ComplaintRead(BaseModel):
    """Complaint response."""

    id: UUID
    complaint_number: str
    title: str
    description: str
    location: str
    store_code: str
    priority: str
    status: str
    photos: list[PhotoRead]
    creator_type: str
    client: PartyRef | None = None
    created_by_technician: PartyRef | None = None
    assigned_technician: PartyRef | None = None
    assigned_by: PartyRef | None = None
    assigned_at: datetime | None = None
    started_at: datetime | None = None
    technician_notes: str | None = None
    resolution_notes: str | None = None
    resolution_photos: list[PhotoRead]
    resolved_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PageMeta(BaseModel):
    total: int
    page: int
    pages: int
    limit: int


class ComplaintResponse(BaseModel):
    success: bool = True
    message: str | None = None
    complaint: ComplaintRead


class ComplaintListResponse(BaseModel):
    success: bool = True
    complaints: list[ComplaintRead]
    pagination: PageMeta


class AssignmentStats(BaseModel):
    total: int
    assigned: int
    in_progress: int
    completed: int


class AssignmentListResponse(BaseModel):
    success: bool = True
    complaints: list[ComplaintRead]
    stats: AssignmentStats


class ResolvedListResponse(BaseModel):
    success: bool = True
    complaints: list[ComplaintRead]


class AutoAssignmentRead(BaseModel):
    assigned: bool
    reason: str | None = None
    technician_id: UUID | None = None


class TechnicianComplaintResponse(ComplaintResponse):
    auto_assignment: AutoAssignmentRead


class AssignComplaintRequest(BaseModel):
    """Admin assignment of a pending complaint."""

    complaint_id: UUID
    technician_id: UUID


class NotificationRead(BaseModel):
    id: UUID
    complaint_id: UUID
    recipient: str
    type: str
    message: str
    status: str
    external_message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: list[NotificationRead]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
