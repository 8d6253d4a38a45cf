"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Acting party roles, as asserted by the authentication layer.

    - CLIENT: raises complaints for a store
    - TECHNICIAN: works assigned complaints, submits billing
    - ADMIN: assigns complaints, amends billing
    """

    CLIENT = "client"
    TECHNICIAN = "technician"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class ComplaintStatus(str, Enum):
    """Complaint lifecycle states (forward only)."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class ComplaintPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class NotificationType(str, Enum):
    """Kinds of outbound messages recorded in the notification audit trail."""

    ASSIGNMENT = "assignment"
    STATUS_UPDATE = "status_update"
    COMPLETION = "completion"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


DEFAULT_COMPLAINT_PRIORITY = ComplaintPriority.MEDIUM

# Complaints a technician is still working on
ACTIVE_ASSIGNMENT_STATUSES = (ComplaintStatus.ASSIGNED, ComplaintStatus.IN_PROGRESS)

# Billing can be filed once a technician holds the complaint
BILLABLE_STATUSES = (
    ComplaintStatus.ASSIGNED,
    ComplaintStatus.IN_PROGRESS,
    ComplaintStatus.RESOLVED,
)
