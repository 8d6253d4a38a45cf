"""Billing reconciliation: one materials record per complaint."""

from __future__ import annotations

import json
import logging
import math
import uuid
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from complaint_desk.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from complaint_desk.db.enums import BILLABLE_STATUSES
from complaint_desk.db.models import BillingRecord, Complaint
from complaint_desk.db.models.common import utcnow
from complaint_desk.schemas.auth import AdminActor, TechnicianActor
from complaint_desk.schemas.billing import BillingRecordRead
from complaint_desk.services.photo_storage import (
    BILL_PHOTO_FOLDER,
    PhotoStorage,
    delete_photos,
    upload_photos,
    validate_photo,
)
from complaint_desk.utils.file_upload import PhotoUpload
from complaint_desk.utils.normalization import parse_bool
from complaint_desk.utils.pagination import PaginationParams, clamp_pagination, paginate_query

logger = logging.getLogger(__name__)

TECHNICIAN_DEFAULT_LIMIT = 20
TECHNICIAN_MAX_LIMIT = 200
ADMIN_DEFAULT_LIMIT = 30
ADMIN_MAX_LIMIT = 100


# =============================================================================
# Input parsing
# =============================================================================

def parse_materials(raw: Any) -> list:
    """Accept a list or a JSON array string."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("materials must be a JSON array")
        if isinstance(parsed, list):
            return parsed
    raise ValidationError("materials must be a JSON array")


def _parse_amount(value: Any, field: str) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a number")
    if number < 0:
        raise ValidationError(f"{field} cannot be negative")
    return number


def normalize_materials(raw_materials: list) -> list[dict]:
    """
    Clean material rows and drop blank ones.

    Each row comes back as ``{row_id, name, quantity, price, bill_photo_field}``
    with missing amounts left as None.
    """
    rows: list[dict] = []
    for item in raw_materials:
        if not isinstance(item, dict):
            raise ValidationError("Each material must be an object")
        name = item.get("name").strip() if isinstance(item.get("name"), str) else ""
        quantity = _parse_amount(item.get("quantity"), "quantity")
        price = _parse_amount(item.get("price"), "price")
        field = item.get("bill_photo_field")
        bill_photo_field = field if isinstance(field, str) and field else None
        row_id = item.get("row_id")
        if not (name or quantity is not None or price is not None or bill_photo_field):
            continue
        rows.append(
            {
                "row_id": str(row_id) if row_id else None,
                "name": name,
                "quantity": quantity,
                "price": price,
                "bill_photo_field": bill_photo_field,
            }
        )
    return rows


def _require_names(rows: list[dict]) -> None:
    if not rows:
        raise ValidationError("Please add at least one material")
    for index, row in enumerate(rows, start=1):
        if not row["name"]:
            raise ValidationError(f"Material name is required (row {index})")


def _parse_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} is required")


def to_billing_read(record: BillingRecord) -> BillingRecordRead:
    return BillingRecordRead.model_validate(record)


# =============================================================================
# Technician
# =============================================================================

def create_billing_record(
    db: Session,
    storage: PhotoStorage,
    actor: TechnicianActor,
    *,
    complaint_id: Any,
    is_complaint_resolved: Any = None,
    materials_used: Any = None,
    materials: Any = None,
    files: list[PhotoUpload] | None = None,
) -> BillingRecord:
    """
    Submit the billing record for a complaint assigned to the caller.

    Bill photos are matched to rows through ``bill_photo_field``, which names
    the multipart field that carried the file.
    """
    if complaint_id is None or complaint_id == "":
        raise ValidationError("complaint_id is required")
    complaint_uuid = _parse_uuid(complaint_id, "complaint_id")

    complaint = db.query(Complaint).filter(Complaint.id == complaint_uuid).first()
    if not complaint:
        raise NotFoundError("Complaint not found")
    if not complaint.assigned_technician_id:
        raise ConflictError("Complaint is not assigned to any technician")
    if complaint.assigned_technician_id != actor.id:
        raise ForbiddenError("You can only create billing for your assigned complaints")
    if complaint.status not in [s.value for s in BILLABLE_STATUSES]:
        raise ConflictError(f"Billing is not allowed while complaint is {complaint.status}")

    existing = db.query(BillingRecord.id).filter(BillingRecord.complaint_id == complaint.id).first()
    if existing:
        raise ConflictError("Billing record already submitted for this complaint")

    safe_resolved = parse_bool(is_complaint_resolved, False)
    safe_materials_used = parse_bool(materials_used, False)

    rows: list[dict] = []
    if safe_materials_used:
        rows = normalize_materials(parse_materials(materials))
        _require_names(rows)

    files_by_field = {f.field_name: f for f in files or [] if f.field_name}
    pending: list[tuple[int, PhotoUpload]] = []
    for index, row in enumerate(rows):
        upload = files_by_field.get(row["bill_photo_field"]) if row["bill_photo_field"] else None
        if upload:
            validate_photo(upload)
            pending.append((index, upload))

    stored = upload_photos(storage, [u for _, u in pending], BILL_PHOTO_FOLDER) if pending else []
    photo_by_row = {index: photo for (index, _), photo in zip(pending, stored)}

    record = BillingRecord(
        complaint_id=complaint.id,
        technician_id=actor.id,
        is_complaint_resolved=safe_resolved,
        materials_used=safe_materials_used,
        materials=[
            {
                "row_id": uuid.uuid4().hex,
                "name": row["name"],
                "quantity": row["quantity"] or 0,
                "price": row["price"] or 0,
                "bill_photo": photo_by_row.get(index),
            }
            for index, row in enumerate(rows)
        ],
        submitted_at=utcnow(),
    )
    try:
        db.add(record)
        db.commit()
    except IntegrityError:
        db.rollback()
        delete_photos(storage, stored)
        raise ConflictError("Billing record already submitted for this complaint")
    except Exception:
        db.rollback()
        delete_photos(storage, stored)
        raise

    db.refresh(record)
    logger.info(
        "Billing record created record=%s complaint=%s materials=%s",
        record.id,
        complaint.complaint_number,
        len(rows),
    )
    return record


def list_for_technician(
    db: Session,
    technician_id: UUID,
    page: Any = None,
    limit: Any = None,
) -> tuple[list[BillingRecord], int, PaginationParams]:
    pagination = clamp_pagination(
        page, limit, default_limit=TECHNICIAN_DEFAULT_LIMIT, max_limit=TECHNICIAN_MAX_LIMIT
    )
    query = (
        db.query(BillingRecord)
        .filter(BillingRecord.technician_id == technician_id)
        .order_by(BillingRecord.submitted_at.desc())
    )
    records, total = paginate_query(query, pagination)
    return records, total, pagination


# =============================================================================
# Admin
# =============================================================================

def list_all(
    db: Session,
    page: Any = None,
    limit: Any = None,
) -> tuple[list[BillingRecord], int, PaginationParams]:
    pagination = clamp_pagination(
        page, limit, default_limit=ADMIN_DEFAULT_LIMIT, max_limit=ADMIN_MAX_LIMIT
    )
    query = db.query(BillingRecord).order_by(BillingRecord.submitted_at.desc())
    records, total = paginate_query(query, pagination)
    return records, total, pagination


def get_record(db: Session, record_id: UUID) -> BillingRecord:
    record = db.query(BillingRecord).filter(BillingRecord.id == record_id).first()
    if not record:
        raise NotFoundError("Billing record not found")
    return record


def update_by_admin(
    db: Session,
    storage: PhotoStorage,
    actor: AdminActor,
    record_id: UUID,
    *,
    is_complaint_resolved: Any = None,
    materials_used: Any = None,
    materials: Any = None,
) -> BillingRecord:
    """
    Amend flags and replace the materials list.

    Rows are matched to stored rows by ``row_id``; a matched row keeps its bill
    photo, an unmatched row is new and has none. A row_id may appear only once.
    Photos of rows that are gone
    are deleted from storage after the commit.
    """
    record = get_record(db, record_id)

    safe_materials_used = (
        parse_bool(materials_used, record.materials_used)
        if materials_used is not None
        else record.materials_used
    )
    safe_resolved = (
        parse_bool(is_complaint_resolved, record.is_complaint_resolved)
        if is_complaint_resolved is not None
        else record.is_complaint_resolved
    )

    previous = list(record.materials or [])
    if not safe_materials_used:
        next_materials: list[dict] = []
    elif materials is None:
        next_materials = previous
        _require_names(next_materials)
    else:
        rows = normalize_materials(parse_materials(materials))
        _require_names(rows)
        previous_by_row = {m.get("row_id"): m for m in previous if m.get("row_id")}
        next_materials = []
        seen_row_ids: set[str] = set()
        for row in rows:
            if row["row_id"]:
                if row["row_id"] in seen_row_ids:
                    raise ValidationError(f"Duplicate row_id in materials: {row['row_id']}")
                seen_row_ids.add(row["row_id"])
            match = previous_by_row.get(row["row_id"]) if row["row_id"] else None
            next_materials.append(
                {
                    "row_id": row["row_id"] if match else uuid.uuid4().hex,
                    "name": row["name"],
                    "quantity": row["quantity"] or 0,
                    "price": row["price"] or 0,
                    "bill_photo": match.get("bill_photo") if match else None,
                }
            )

    kept_keys = {
        (m.get("bill_photo") or {}).get("storage_key")
        for m in next_materials
        if m.get("bill_photo")
    }
    orphaned = [
        m["bill_photo"]
        for m in previous
        if m.get("bill_photo") and m["bill_photo"].get("storage_key") not in kept_keys
    ]

    record.is_complaint_resolved = safe_resolved
    record.materials_used = safe_materials_used
    record.materials = next_materials
    record.updated_by_admin_id = actor.id
    record.updated_by_admin_at = utcnow()
    db.commit()
    db.refresh(record)

    delete_photos(storage, orphaned)
    logger.info(
        "Billing record updated by admin record=%s materials=%s dropped_photos=%s",
        record.id,
        len(next_materials),
        len(orphaned),
    )
    return record
