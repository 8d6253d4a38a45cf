"""SQLAlchemy ORM models."""

from complaint_desk.db.models.billing import BillingRecord
from complaint_desk.db.models.complaints import Complaint
from complaint_desk.db.models.counters import SequenceCounter
from complaint_desk.db.models.notifications import Notification
from complaint_desk.db.models.parties import Admin, Client, Technician

__all__ = [
    "Admin",
    "BillingRecord",
    "Client",
    "Complaint",
    "Notification",
    "SequenceCounter",
    "Technician",
]
