from complaint_desk.db.enums import NotificationType
from complaint_desk.db.models import Notification
from complaint_desk.schemas.auth import ClientActor, TechnicianActor
from complaint_desk.services import complaint_service, notification_dispatcher

from conftest import FakeChannel


def _complaint(db, storage, actor):
    return complaint_service.create_complaint(
        db, storage, actor, title="AC leak", description="Water dripping", location="Kharadi"
    )


def test_dispatch_records_sent_notification(db, storage, client_party):
    complaint = _complaint(db, storage, ClientActor(id=client_party.id))
    channel = FakeChannel()

    result = notification_dispatcher.dispatch(
        db,
        channel,
        complaint=complaint,
        recipient="9876543210",
        notification_type=NotificationType.STATUS_UPDATE,
        template_kind="in-progress",
        variables={"name": "Kharadi Store", "complaint_number": complaint.complaint_number},
        message="status changed",
    )

    assert result.success is True
    record = db.query(Notification).one()
    assert record.status == "sent"
    assert record.external_message_id == "req-1"
    assert record.sent_at is not None
    assert record.error is None


def test_dispatch_records_failure_without_raising(db, storage, client_party):
    complaint = _complaint(db, storage, ClientActor(id=client_party.id))

    result = notification_dispatcher.dispatch(
        db,
        FakeChannel(fail_with="template rejected"),
        complaint=complaint,
        recipient="9876543210",
        notification_type=NotificationType.ASSIGNMENT,
        template_kind="assignment",
        variables={},
        message="assigned",
    )

    assert result.success is False
    record = db.query(Notification).one()
    assert record.status == "failed"
    assert record.error == "template rejected"
    assert record.sent_at is None


def test_dispatch_swallows_channel_exceptions(db, storage, client_party):
    complaint = _complaint(db, storage, ClientActor(id=client_party.id))

    result = notification_dispatcher.dispatch(
        db,
        FakeChannel(raise_error=True),
        complaint=complaint,
        recipient="9876543210",
        notification_type=NotificationType.STATUS_UPDATE,
        template_kind="resolved",
        variables={},
        message="resolved",
    )

    assert result.success is False
    record = db.query(Notification).one()
    assert record.status == "failed"
    assert "channel exploded" in record.error


def test_each_attempt_creates_its_own_record(db, storage, client_party):
    complaint = _complaint(db, storage, ClientActor(id=client_party.id))
    channel = FakeChannel(fail_with="busy")

    notification_dispatcher.notify_status_change(db, channel, complaint, "in-progress")
    channel.fail_with = None
    notification_dispatcher.notify_status_change(db, channel, complaint, "in-progress")

    statuses = sorted(n.status for n in db.query(Notification).all())
    assert statuses == ["failed", "sent"]


def test_status_notification_falls_back_to_creating_technician(db, storage, technician):
    complaint = _complaint(db, storage, TechnicianActor(id=technician.id))
    channel = FakeChannel()

    notification_dispatcher.notify_status_change(db, channel, complaint, "resolved")

    assert channel.sent[0].recipient == technician.phone_number
    assert channel.sent[0].variables["name"] == technician.name


def test_missing_recipient_skips_dispatch(db, storage, client_party):
    client_party.phone_number = None
    db.commit()
    complaint = _complaint(db, storage, ClientActor(id=client_party.id))
    channel = FakeChannel()

    result = notification_dispatcher.notify_status_change(db, channel, complaint, "resolved")

    assert result is None
    assert channel.sent == []
    assert db.query(Notification).count() == 0
