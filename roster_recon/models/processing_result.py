from __future__ import annotations

from dataclasses import dataclass, field

from .identity import IdentityRole

"""Request context and result models for one import call."""

__all__ = [
    "ImportContext",
    "ImportResult",
    "MAX_REPORTED_ERRORS",
]

MAX_REPORTED_ERRORS = 10


@dataclass(frozen=True)
class ImportContext:
    """Target of an import.

    training_day_id set -> attendance import for that day; None -> roster import.
    """
    role: IdentityRole = IdentityRole.CADET
    training_day_id: int | None = None

    @property
    def is_attendance(self) -> bool:
        return self.training_day_id is not None


@dataclass
class ImportResult:
    """Aggregate counters plus a capped list of human-readable errors.

    Created fresh per import call. Counters are mutated as rows complete.
    """
    success_count: int = 0
    fail_count: int = 0
    skipped_count: int = 0
    errors: list[str] = field(default_factory=list)
    max_errors: int = MAX_REPORTED_ERRORS

    def record_success(self) -> None:
        self.success_count += 1

    def record_skip(self) -> None:
        self.skipped_count += 1

    def record_failure(self, message: str) -> None:
        """Count a failed row; only the first max_errors messages are kept."""
        self.fail_count += 1
        if len(self.errors) < self.max_errors:
            self.errors.append(message)

    @property
    def processed(self) -> int:
        return self.success_count + self.fail_count + self.skipped_count

    @property
    def message(self) -> str:
        return (
            f"Import complete. Success: {self.success_count}, "
            f"Failed: {self.fail_count}, Skipped: {self.skipped_count}"
        )

    def to_dict(self) -> dict[str, object]:
        """Caller-facing payload: {message, errors}."""
        return {"message": self.message, "errors": list(self.errors)}
