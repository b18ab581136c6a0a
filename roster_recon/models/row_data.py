from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Row models flowing through one import call.

RawRow is what a format extractor produces; NormalizedRecord is the canonical
field set the normalizer recovers from it. Both live only for the duration of
a single import.
"""

__all__ = [
    "AttendanceStatus",
    "COUNTED_STATUSES",
    "RawRow",
    "NormalizedRecord",
]


class AttendanceStatus(Enum):
    """Attendance vocabulary. UNKNOWN marks lines where no keyword was found."""
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> AttendanceStatus | None:
        """Case-fold a free-form status; None when it is not in the vocabulary."""
        if value is None:
            return None
        text = str(value).strip().lower()
        for status in cls:
            if status.value == text:
                return status
        return None


# Statuses that contribute to the presence total
COUNTED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.EXCUSED})


@dataclass(frozen=True)
class RawRow:
    """One row as extracted from a source document.

    Tabular sources fill `values` (header text -> cell text, headers verbatim);
    text/OCR sources fill `raw` with a single trimmed line.
    """
    row_number: int  # 1-based position within the extracted sequence
    values: dict[str, str | None] | None = None
    raw: str | None = None

    @property
    def structured(self) -> bool:
        return self.values is not None


@dataclass(frozen=True)
class NormalizedRecord:
    """Canonical fields recovered from one RawRow. Absent fields are None."""
    row_number: int
    structured: bool
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    middle_name: str | None = None
    suffix_name: str | None = None
    student_id: str | None = None
    username: str | None = None
    email: str | None = None
    status: AttendanceStatus = AttendanceStatus.UNKNOWN
    remarks: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)  # other roster columns

    @property
    def has_identifying_data(self) -> bool:
        return bool(
            self.name or self.student_id or self.email or self.username
            or (self.first_name and self.last_name)
        )

    @property
    def identifier(self) -> str | None:
        """Natural key for creating a new identity: student id, then username, then email."""
        return self.student_id or self.username or self.email

    @property
    def label(self) -> str:
        """Short human-readable handle used in error messages."""
        if self.identifier:
            return self.identifier
        if self.name:
            return self.name
        parts = [p for p in (self.first_name, self.last_name) if p]
        if parts:
            return " ".join(parts)
        return f"row {self.row_number}"
