"""Per-key monotonic sequence allocation backed by ``sequence_counters``."""

from sqlalchemy import text
from sqlalchemy.orm import Session


def next_value(db: Session, key: str) -> int:
    """
    Return the next value of the ``key`` series (first call returns 1).

    Uses atomic INSERT...ON CONFLICT so concurrent callers, including callers in
    other processes, never observe the same value. The row is created lazily.
    """
    result = db.execute(
        text("""
            INSERT INTO sequence_counters (key, seq, updated_at)
            VALUES (:key, 1, CURRENT_TIMESTAMP)
            ON CONFLICT (key)
            DO UPDATE SET seq = sequence_counters.seq + 1,
                          updated_at = CURRENT_TIMESTAMP
            RETURNING seq
        """),
        {"key": key},
    ).scalar_one_or_none()
    if result is None:
        raise RuntimeError(f"Failed to allocate sequence value for {key}")
    return int(result)
