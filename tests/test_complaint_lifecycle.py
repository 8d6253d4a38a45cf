import itertools
import uuid

import pytest

from complaint_desk.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from complaint_desk.db.enums import ComplaintStatus
from complaint_desk.db.models import Complaint, Notification, SequenceCounter
from complaint_desk.schemas.auth import AdminActor, ClientActor, TechnicianActor
from complaint_desk.services import complaint_service

from conftest import FakeChannel, make_photo

LEGAL = {
    ("pending", "assigned"),
    ("assigned", "in-progress"),
    ("in-progress", "resolved"),
}


def _raise(db, storage, client_party, **overrides):
    fields = {
        "title": "AC leak",
        "description": "Water dripping from indoor unit",
        "location": "Kharadi",
    }
    fields.update(overrides)
    return complaint_service.create_complaint(db, storage, ClientActor(id=client_party.id), **fields)


def _assign(db, channel, admin, complaint, technician):
    return complaint_service.assign_complaint(
        db, channel, AdminActor(id=admin.id), complaint.id, technician.id
    )


def _move(db, storage, channel, technician, complaint, status, **kwargs):
    return complaint_service.change_status(
        db, storage, channel, TechnicianActor(id=technician.id), complaint.id, status=status, **kwargs
    )


# =============================================================================
# Creation
# =============================================================================

def test_create_mints_number_and_stores_photos(db, storage, client_party):
    complaint = _raise(db, storage, client_party, photos=[make_photo("a.jpg"), make_photo("b.png", "image/png")])

    assert complaint.complaint_number == "CMP-KHA-000001"
    assert complaint.store_code == "KHA"
    assert complaint.status == "pending"
    assert complaint.priority == "medium"
    assert complaint.creator_type == "client"
    assert [p["storage_key"] for p in complaint.photos] == ["complaints/photo-1.jpg", "complaints/photo-2.jpg"]
    assert complaint.photos[1]["original_name"] == "b.png"


def test_create_numbers_are_per_store(db, storage, client_party):
    first = _raise(db, storage, client_party)
    second = _raise(db, storage, client_party)
    other = _raise(db, storage, client_party, location="Wakad")

    assert first.complaint_number == "CMP-KHA-000001"
    assert second.complaint_number == "CMP-KHA-000002"
    assert other.complaint_number == "CMP-WAK-000001"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"title": "  "}, "title is required"),
        ({"description": None}, "description is required"),
        ({"location": ""}, "location is required"),
        ({"priority": "critical"}, "Invalid priority: critical"),
    ],
)
def test_create_validation_does_not_consume_sequence(db, storage, client_party, overrides, message):
    with pytest.raises(ValidationError) as exc:
        _raise(db, storage, client_party, **overrides)

    assert exc.value.message == message
    assert db.query(SequenceCounter).count() == 0
    assert storage.attempts == 0


def test_create_rejects_too_many_photos(db, storage, client_party):
    with pytest.raises(ValidationError, match="Maximum 5 photos"):
        _raise(db, storage, client_party, photos=[make_photo(f"p{i}.jpg") for i in range(6)])
    assert storage.attempts == 0


def test_create_rejects_non_image(db, storage, client_party):
    with pytest.raises(ValidationError, match="Only image files"):
        _raise(db, storage, client_party, photos=[make_photo("notes.pdf", "application/pdf")])


def test_create_upload_failure_rolls_back_batch(db, storage, client_party):
    storage.fail_on = {2}

    with pytest.raises(StorageError):
        _raise(db, storage, client_party, photos=[make_photo("1.jpg"), make_photo("2.jpg"), make_photo("3.jpg")])

    assert storage.attempts == 3
    assert sorted(storage.deleted) == ["complaints/photo-1.jpg", "complaints/photo-2.jpg"]
    assert storage.objects == {}
    assert db.query(Complaint).count() == 0
    assert db.query(SequenceCounter).count() == 0


# =============================================================================
# Pending edits
# =============================================================================

def test_update_pending_replaces_photos(db, storage, client_party):
    complaint = _raise(db, storage, client_party, photos=[make_photo("a.jpg"), make_photo("b.jpg")])
    first_key = complaint.photos[0]["storage_key"]

    updated = complaint_service.update_pending(
        db,
        storage,
        ClientActor(id=client_party.id),
        complaint.id,
        title="AC leak near billing counter",
        location="Wakad",
        removed_photos=[first_key],
        photos=[make_photo("c.jpg")],
    )

    assert updated.title == "AC leak near billing counter"
    assert updated.location == "Wakad"
    assert updated.complaint_number == "CMP-KHA-000001"
    assert [p["original_name"] for p in updated.photos] == ["b.jpg", "c.jpg"]
    assert storage.deleted == [first_key]


def test_update_pending_caps_total_photos(db, storage, client_party):
    complaint = _raise(db, storage, client_party, photos=[make_photo(f"p{i}.jpg") for i in range(4)])

    with pytest.raises(ValidationError, match="Maximum 5 photos"):
        complaint_service.update_pending(
            db,
            storage,
            ClientActor(id=client_party.id),
            complaint.id,
            photos=[make_photo("x.jpg"), make_photo("y.jpg")],
        )
    assert storage.attempts == 4


def test_update_after_assignment_conflicts(db, storage, channel, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)

    with pytest.raises(ConflictError, match="current status: assigned"):
        complaint_service.update_pending(
            db, storage, ClientActor(id=client_party.id), complaint.id, title="Changed"
        )


def test_update_by_other_client_is_not_found(db, storage, client_party):
    complaint = _raise(db, storage, client_party)

    with pytest.raises(NotFoundError):
        complaint_service.update_pending(
            db, storage, ClientActor(id=uuid.uuid4()), complaint.id, title="Changed"
        )


def test_delete_pending_removes_photos(db, storage, client_party):
    complaint = _raise(db, storage, client_party, photos=[make_photo("a.jpg"), make_photo("b.jpg")])
    complaint_id = complaint.id

    complaint_service.delete_pending(db, storage, ClientActor(id=client_party.id), complaint_id)

    assert db.query(Complaint).filter(Complaint.id == complaint_id).count() == 0
    assert sorted(storage.deleted) == ["complaints/photo-1.jpg", "complaints/photo-2.jpg"]


def test_delete_after_assignment_conflicts(db, storage, channel, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)

    with pytest.raises(ConflictError):
        complaint_service.delete_pending(db, storage, ClientActor(id=client_party.id), complaint.id)
    assert db.query(Complaint).count() == 1


# =============================================================================
# Assignment
# =============================================================================

def test_assign_sets_assignment_and_notifies_owner(db, storage, channel, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)

    assigned = _assign(db, channel, admin, complaint, technician)

    assert assigned.status == "assigned"
    assert assigned.assigned_technician_id == technician.id
    assert assigned.assigned_by_admin_id == admin.id
    assert assigned.assigned_at is not None
    assert channel.sent[0].recipient == client_party.phone_number
    assert channel.sent[0].template_kind == "assignment"
    notification = db.query(Notification).one()
    assert notification.type == "assignment"
    assert notification.message == f"Complaint {complaint.complaint_number} assigned to Ravi"


def test_assign_twice_is_invalid_transition(db, storage, channel, client_party, admin, technician, other_technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)

    with pytest.raises(InvalidTransitionError) as exc:
        _assign(db, channel, admin, complaint, other_technician)

    assert exc.value.status_code == 409
    assert exc.value.message == "Cannot change status from assigned to assigned"
    db.refresh(complaint)
    assert complaint.assigned_technician_id == technician.id


def test_assign_to_inactive_technician_is_not_found(db, storage, channel, client_party, admin, technician):
    technician.is_active = False
    db.commit()
    complaint = _raise(db, storage, client_party)

    with pytest.raises(NotFoundError, match="Technician not found"):
        _assign(db, channel, admin, complaint, technician)


# =============================================================================
# Status transitions
# =============================================================================

@pytest.mark.parametrize(
    "current, requested",
    [
        pair
        for pair in itertools.product([s.value for s in ComplaintStatus], repeat=2)
        if pair not in LEGAL
    ],
)
def test_illegal_transitions_conflict_and_leave_status(db, storage, channel, client_party, technician, current, requested):
    complaint = _raise(db, storage, client_party)
    complaint.status = current
    complaint.assigned_technician_id = technician.id
    db.commit()

    with pytest.raises(InvalidTransitionError):
        _move(db, storage, channel, technician, complaint, requested, resolution_notes="done")

    db.expire_all()
    assert db.get(Complaint, complaint.id).status == current
    assert channel.sent == []


def test_full_technician_flow(db, storage, channel, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)

    started = _move(db, storage, channel, technician, complaint, "in-progress", notes="On site")
    assert started.status == "in-progress"
    assert started.started_at is not None
    assert started.technician_notes == "On site"

    resolved = _move(
        db,
        storage,
        channel,
        technician,
        complaint,
        "resolved",
        resolution_notes="Replaced filter",
        photos=[make_photo("after.jpg")],
    )
    assert resolved.status == "resolved"
    assert resolved.resolution_notes == "Replaced filter"
    assert resolved.resolved_at is not None
    assert resolved.completed_at is not None
    assert resolved.resolution_photos[0]["storage_key"].startswith("complaints/resolution/")

    assert [m.template_kind for m in channel.sent] == ["assignment", "in-progress", "resolved"]
    assert db.query(Notification).filter(Notification.status == "sent").count() == 3


def test_resolution_requires_notes(db, storage, channel, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)
    _move(db, storage, channel, technician, complaint, "in-progress")

    with pytest.raises(ValidationError, match="resolution_notes is required"):
        _move(db, storage, channel, technician, complaint, "resolved", resolution_notes="   ")

    db.expire_all()
    assert db.get(Complaint, complaint.id).status == "in-progress"


def test_photos_only_accepted_when_resolving(db, storage, channel, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)

    with pytest.raises(ValidationError, match="only be attached when resolving"):
        _move(db, storage, channel, technician, complaint, "in-progress", photos=[make_photo()])
    assert storage.attempts == 0


def test_resolution_upload_failure_keeps_in_progress(db, storage, channel, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)
    _move(db, storage, channel, technician, complaint, "in-progress")
    storage.fail_on = {1}

    with pytest.raises(StorageError):
        _move(
            db,
            storage,
            channel,
            technician,
            complaint,
            "resolved",
            resolution_notes="Replaced filter",
            photos=[make_photo("a.jpg"), make_photo("b.jpg")],
        )

    assert storage.objects == {}
    db.expire_all()
    assert db.get(Complaint, complaint.id).status == "in-progress"


def test_notification_failure_does_not_block_resolution(db, storage, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, FakeChannel(), admin, complaint, technician)
    _move(db, storage, FakeChannel(), technician, complaint, "in-progress")

    resolved = _move(
        db,
        storage,
        FakeChannel(raise_error=True),
        technician,
        complaint,
        "resolved",
        resolution_notes="Replaced filter",
    )

    assert resolved.status == "resolved"
    failed = db.query(Notification).filter(Notification.status == "failed").one()
    assert failed.error
    assert failed.type == "status_update"


def test_transition_by_other_technician_is_forbidden(db, storage, channel, client_party, admin, technician, other_technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)

    with pytest.raises(ForbiddenError):
        _move(db, storage, channel, other_technician, complaint, "in-progress")


def test_invalid_status_value_is_validation_error(db, storage, channel, client_party, technician):
    complaint = _raise(db, storage, client_party)

    with pytest.raises(ValidationError, match="Invalid status value: closed"):
        _move(db, storage, channel, technician, complaint, "closed")


def test_stale_transition_loses_race(session_factory, db, storage, channel, client_party, admin, technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)

    stale = session_factory()
    try:
        stale_copy = stale.get(Complaint, complaint.id)
        assert stale_copy.status == "assigned"

        _move(db, storage, channel, technician, complaint, "in-progress")

        with pytest.raises(InvalidTransitionError) as exc:
            _move(stale, storage, channel, technician, stale_copy, "in-progress")
        assert exc.value.current == "in-progress"
    finally:
        stale.close()

    db.expire_all()
    assert db.get(Complaint, complaint.id).status == "in-progress"


# =============================================================================
# Visibility and listings
# =============================================================================

def test_visibility_by_role(db, storage, channel, client_party, admin, technician, other_technician):
    complaint = _raise(db, storage, client_party)
    _assign(db, channel, admin, complaint, technician)

    assert complaint_service.get_for_actor(db, ClientActor(id=client_party.id), complaint.id).id == complaint.id
    assert complaint_service.get_for_actor(db, TechnicianActor(id=technician.id), complaint.id).id == complaint.id
    assert complaint_service.get_for_actor(db, AdminActor(id=admin.id), complaint.id).id == complaint.id

    with pytest.raises(NotFoundError):
        complaint_service.get_for_actor(db, TechnicianActor(id=other_technician.id), complaint.id)
    with pytest.raises(NotFoundError):
        complaint_service.get_for_actor(db, ClientActor(id=uuid.uuid4()), complaint.id)


def test_assignment_stats(db, storage, channel, client_party, admin, technician):
    first = _raise(db, storage, client_party)
    second = _raise(db, storage, client_party)
    third = _raise(db, storage, client_party)
    for complaint in (first, second, third):
        _assign(db, channel, admin, complaint, technician)
    _move(db, storage, channel, technician, second, "in-progress")
    _move(db, storage, channel, technician, third, "in-progress")
    _move(db, storage, channel, technician, third, "resolved", resolution_notes="Fixed")

    active, stats = complaint_service.list_assignments(db, technician.id)

    assert {c.id for c in active} == {first.id, second.id}
    assert stats == {"total": 3, "assigned": 1, "in_progress": 1, "completed": 1}
    assert [c.id for c in complaint_service.list_resolved(db, technician.id)] == [third.id]


def test_technician_created_complaint_records_creator(db, storage, technician):
    complaint = complaint_service.create_complaint(
        db,
        storage,
        TechnicianActor(id=technician.id),
        title="Chiller noise",
        description="Compressor rattling",
        location="Aundh",
    )

    assert complaint.creator_type == "technician"
    assert complaint.created_by_technician_id == technician.id
    assert complaint.client_id is None
    assert not hasattr(Complaint, "created_by_admin_id")
