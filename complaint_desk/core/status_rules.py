"""Complaint status transition rules."""

from complaint_desk.db.enums import ComplaintStatus

# current -> the single status it may advance to
ALLOWED_TRANSITIONS: dict[ComplaintStatus, ComplaintStatus] = {
    ComplaintStatus.PENDING: ComplaintStatus.ASSIGNED,
    ComplaintStatus.ASSIGNED: ComplaintStatus.IN_PROGRESS,
    ComplaintStatus.IN_PROGRESS: ComplaintStatus.RESOLVED,
}


def is_allowed_transition(current: ComplaintStatus | str, requested: ComplaintStatus | str) -> bool:
    """Return True when ``requested`` is the legal successor of ``current``."""
    try:
        current_status = ComplaintStatus(current)
        requested_status = ComplaintStatus(requested)
    except ValueError:
        return False
    return ALLOWED_TRANSITIONS.get(current_status) == requested_status
