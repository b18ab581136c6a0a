from __future__ import annotations

import logging

from ..db.repository import AttendanceRepository
from ..models.identity import Identity
from ..models.row_data import COUNTED_STATUSES, AttendanceStatus, NormalizedRecord

"""Attendance ledger upsert and presence total recomputation.

The total is always recomputed from the ledger (count -> overwrite), so
running it again after any mutation converges to the same value.
"""

__all__ = [
    "record_attendance",
    "recompute_attendance_total",
]

logger = logging.getLogger(__name__)


def recompute_attendance_total(
    repo: AttendanceRepository,
    cadet_id: int,
    counted: frozenset[AttendanceStatus] = COUNTED_STATUSES,
) -> int:
    """Count counted-status records for cadet_id and write the total. Returns the total."""
    total = repo.count_attendance(cadet_id, counted)
    repo.write_attendance_total(cadet_id, total)
    return total


def record_attendance(
    repo: AttendanceRepository,
    training_day_id: int,
    identity: Identity,
    record: NormalizedRecord,
) -> str:
    """Upsert the (day, identity) record then refresh the identity's total.

    Returns:
        "inserted" or "updated"
    """
    action = repo.upsert_attendance(training_day_id, identity.id, record.status, record.remarks)
    total = recompute_attendance_total(repo, identity.id)
    logger.debug(
        "attendance %s day=%s cadet=%s status=%s total=%s",
        action, training_day_id, identity.id, record.status.value, total,
    )
    return action
