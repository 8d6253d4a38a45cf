from complaint_desk.db.models import Notification, Technician
from complaint_desk.schemas.auth import TechnicianActor
from complaint_desk.services import complaint_service
from complaint_desk.services.auto_assignment import AutoAssignmentPolicy

from conftest import DEFAULT_TECHNICIAN_PHONE, FakeChannel


def _store_complaint(db, storage, technician):
    return complaint_service.create_complaint(
        db,
        storage,
        TechnicianActor(id=technician.id),
        title="Freezer down",
        description="Display freezer not cooling",
        location="Wakad",
    )


def test_assigns_to_default_technician_and_notifies(db, storage, technician, default_technician):
    complaint = _store_complaint(db, storage, technician)
    channel = FakeChannel()

    result = AutoAssignmentPolicy("+91 95454 45133").apply(db, complaint, channel)

    assert result.assigned is True
    assert result.technician_id == default_technician.id
    db.refresh(complaint)
    assert complaint.status == "assigned"
    assert complaint.assigned_technician_id == default_technician.id
    assert complaint.assigned_at is not None
    assert complaint.assigned_by_admin_id is None

    assert channel.sent[0].recipient == DEFAULT_TECHNICIAN_PHONE
    assert channel.sent[0].template_kind == "assignment"
    notification = db.query(Notification).one()
    assert notification.type == "assignment"
    assert notification.status == "sent"


def test_reports_missing_default_phone(db, storage, technician):
    complaint = _store_complaint(db, storage, technician)

    result = AutoAssignmentPolicy("").apply(db, complaint, FakeChannel())

    assert result.assigned is False
    assert result.reason == "missing_default_phone"
    db.refresh(complaint)
    assert complaint.status == "pending"


def test_reports_technician_not_found_for_inactive_technician(db, storage, technician, default_technician):
    default_technician.is_active = False
    db.commit()
    complaint = _store_complaint(db, storage, technician)

    result = AutoAssignmentPolicy(DEFAULT_TECHNICIAN_PHONE).apply(db, complaint, FakeChannel())

    assert result.assigned is False
    assert result.reason == "technician_not_found"


def test_reports_already_assigned(db, storage, technician, default_technician):
    complaint = _store_complaint(db, storage, technician)
    policy = AutoAssignmentPolicy(DEFAULT_TECHNICIAN_PHONE)
    policy.apply(db, complaint, FakeChannel())

    result = policy.apply(db, complaint, FakeChannel())

    assert result.assigned is False
    assert result.reason == "already_assigned"


def test_failed_notification_keeps_assignment(db, storage, technician, default_technician):
    complaint = _store_complaint(db, storage, technician)

    result = AutoAssignmentPolicy(DEFAULT_TECHNICIAN_PHONE).apply(
        db, complaint, FakeChannel(raise_error=True)
    )

    assert result.assigned is True
    db.refresh(complaint)
    assert complaint.status == "assigned"
    assert db.query(Notification).one().status == "failed"


def test_create_technician_complaint_reports_outcome(db, storage, channel, technician, default_technician):
    policy = AutoAssignmentPolicy(DEFAULT_TECHNICIAN_PHONE)

    complaint, result = complaint_service.create_technician_complaint(
        db,
        storage,
        channel,
        policy,
        TechnicianActor(id=technician.id),
        title="Chiller noise",
        description="Compressor rattling",
        location="Ravet",
    )

    assert complaint.complaint_number == "CMP-RAV-000001"
    assert complaint.creator_type == "technician"
    assert complaint.created_by_technician_id == technician.id
    assert complaint.status == "assigned"
    assert result.to_dict()["technician_id"] == str(default_technician.id)


def test_default_phone_is_normalized_at_construction():
    assert AutoAssignmentPolicy("91-95454-45133").default_phone == "9545445133"
    assert AutoAssignmentPolicy("0091 9545445133").default_phone == "9545445133"
    assert AutoAssignmentPolicy(None).default_phone == ""
