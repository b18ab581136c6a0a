from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Identity domain models: people on the roster and their login accounts.

An Identity is either a cadet or a training staff member. The RoleProfile for
each role records where that population is stored and how it is keyed.
"""

__all__ = [
    "IdentityRole",
    "RoleProfile",
    "ROLE_PROFILES",
    "Identity",
    "LoginAccount",
]


class IdentityRole(Enum):
    CADET = "cadet"
    TRAINING_STAFF = "training_staff"

    @property
    def profile(self) -> RoleProfile:
        return ROLE_PROFILES[self]


@dataclass(frozen=True)
class RoleProfile:
    """Storage layout for one identity population."""
    table: str  # roster table
    key_column: str  # durable natural key (UNIQUE)
    account_fk_column: str  # users.<column> pointing at the roster row
    account_role: str  # users.role value for accounts of this population
    has_grade_aggregate: bool
    attribute_columns: tuple[str, ...]  # mutable roster columns besides name parts / key / email
    insert_defaults: tuple[tuple[str, str], ...] = ()


ROLE_PROFILES: dict[IdentityRole, RoleProfile] = {
    IdentityRole.CADET: RoleProfile(
        table="cadets",
        key_column="student_id",
        account_fk_column="cadet_id",
        account_role="cadet",
        has_grade_aggregate=True,
        attribute_columns=(
            "rank", "contact_number", "address", "course", "year_level", "school_year",
            "battalion", "company", "platoon", "cadet_course", "semester",
        ),
        insert_defaults=(("rank", "Cdt"), ("status", "Ongoing")),
    ),
    IdentityRole.TRAINING_STAFF: RoleProfile(
        table="training_staff",
        key_column="staff_no",
        account_fk_column="staff_id",
        account_role="training_staff",
        has_grade_aggregate=False,
        attribute_columns=("rank", "contact_number", "role"),
    ),
}


@dataclass(frozen=True)
class Identity:
    """A known person, keyed by a durable natural key."""
    id: int
    key: str
    first_name: str
    last_name: str
    middle_name: str | None = None
    suffix_name: str | None = None
    email: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Identity:
        return cls(
            id=row["id"],
            key=row.get("natural_key") or "",
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            middle_name=row.get("middle_name") or None,
            suffix_name=row.get("suffix_name") or None,
            email=row.get("email") or None,
        )


@dataclass(frozen=True)
class LoginAccount:
    """Login identity linked 1:1 to an Identity."""
    id: int | None
    username: str
    role: str
    identity_id: int
    is_approved: bool
    email: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any], identity_id: int) -> LoginAccount:
        return cls(
            id=row["id"],
            username=row["username"],
            role=row["role"],
            identity_id=identity_id,
            is_approved=bool(row.get("is_approved")),
            email=row.get("email") or None,
        )
