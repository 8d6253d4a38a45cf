"""Pydantic schemas for billing records."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from complaint_desk.schemas.complaint import PageMeta, PartyRef, PhotoRead


class MaterialRead(BaseModel):
    row_id: str | None = None
    name: str
    quantity: float
    price: float
    bill_photo: PhotoRead | None = None


class BillingComplaintRef(BaseModel):
    id: UUID
    complaint_number: str
    title: str
    location: str
    status: str

    model_config = {"from_attributes": True}


class BillingRecordRead(BaseModel):
    """Billing record response; ``total_amount`` is derived from the materials."""

    id: UUID
    complaint: BillingComplaintRef
    technician: PartyRef
    is_complaint_resolved: bool
    materials_used: bool
    materials: list[MaterialRead]
    total_amount: float
    submitted_at: datetime
    updated_by_admin: PartyRef | None = None
    updated_by_admin_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BillingRecordResponse(BaseModel):
    success: bool = True
    message: str | None = None
    record: BillingRecordRead


class BillingListResponse(BaseModel):
    success: bool = True
    records: list[BillingRecordRead]
    pagination: PageMeta


class BillingUpdateRequest(BaseModel):
    """
    Admin amendment. Fields left out keep their stored value.

    Booleans accept true/false/1/0/yes/no. ``materials`` is a list of
    ``{row_id?, name, quantity, price}`` objects or the same list as a JSON string.
    """

    is_complaint_resolved: bool | str | int | None = None
    materials_used: bool | str | int | None = None
    materials: list[dict[str, Any]] | str | None = None
