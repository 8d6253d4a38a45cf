"""Human-readable complaint identifiers (``CMP-<CODE>-<NNNNNN>``)."""

from sqlalchemy.orm import Session

from complaint_desk.services import sequence_allocator
from complaint_desk.services.store_codes import get_store_code

COMPLAINT_NUMBER_PREFIX = "CMP"
SEQUENCE_WIDTH = 6


def counter_key(store_code: str) -> str:
    return f"complaint:{store_code}"


def format_complaint_number(store_code: str, seq: int) -> str:
    return f"{COMPLAINT_NUMBER_PREFIX}-{store_code}-{seq:0{SEQUENCE_WIDTH}d}"


def generate_complaint_number(db: Session, store_name: str) -> tuple[str, str]:
    """
    Mint the next complaint number for a store.

    Returns (complaint_number, store_code). Numbers are unique per store series
    and never reused, even when the complaint is later deleted.
    """
    store_code = get_store_code(store_name)
    seq = sequence_allocator.next_value(db, counter_key(store_code))
    return format_complaint_number(store_code, seq), store_code
