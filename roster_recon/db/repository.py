from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from ..models.identity import Identity, IdentityRole, LoginAccount, RoleProfile
from ..models.row_data import AttendanceStatus
from .store import PgStore

"""SQL repositories for roster identities, login accounts and attendance.

Table and column names come from RoleProfile constants or from the fixed
allow-list below, never from import data, so composing them into SQL text is
safe; every value travels as a bound parameter.
"""

__all__ = [
    "RosterRepository",
    "AttendanceRepository",
    "Repositories",
]

_NAME_COLUMNS = ("first_name", "middle_name", "last_name", "suffix_name")


class RosterRepository:
    """Identity, login-account and grade-aggregate access for one role."""

    def __init__(self, store: PgStore, role: IdentityRole) -> None:
        self.store = store
        self.role = role
        self.profile: RoleProfile = role.profile

    @property
    def writable_columns(self) -> tuple[str, ...]:
        return (*_NAME_COLUMNS, self.profile.key_column, "email", *self.profile.attribute_columns)

    def _select(self) -> str:
        p = self.profile
        return (
            f"SELECT id, first_name, middle_name, last_name, suffix_name, email, "
            f"{p.key_column} AS natural_key FROM {p.table}"
        )

    def list_identities(self) -> list[Identity]:
        rows = self.store.all(self._select() + " ORDER BY id")
        return [Identity.from_row(r) for r in rows]

    def find_by_key(self, key: str) -> Identity | None:
        row = self.store.get(self._select() + f" WHERE {self.profile.key_column} = %s", (key,))
        return Identity.from_row(row) if row else None

    def find_by_email(self, email: str) -> Identity | None:
        row = self.store.get(
            self._select() + " WHERE lower(email) = lower(%s) ORDER BY id LIMIT 1", (email,)
        )
        return Identity.from_row(row) if row else None

    def find_by_name(self, first_name: str, last_name: str) -> Identity | None:
        row = self.store.get(
            self._select()
            + " WHERE lower(first_name) = lower(%s) AND lower(last_name) = lower(%s) ORDER BY id LIMIT 1",
            (first_name, last_name),
        )
        return Identity.from_row(row) if row else None

    def _check_columns(self, attrs: dict[str, Any]) -> None:
        unknown = set(attrs) - set(self.writable_columns) - {"status"}
        if unknown:
            raise ValueError(f"unknown {self.profile.table} columns: {sorted(unknown)}")

    def insert_identity(self, attrs: dict[str, Any]) -> int:
        self._check_columns(attrs)
        columns = list(attrs)
        placeholders = ", ".join(["%s"] * len(columns))
        row = self.store.insert(
            f"INSERT INTO {self.profile.table} ({', '.join(columns)}) "
            f"VALUES ({placeholders}) RETURNING id",
            [attrs[c] for c in columns],
        )
        return int(row["id"])

    def update_identity(self, identity_id: int, attrs: dict[str, Any]) -> None:
        """Update only the given columns; an empty mapping is a no-op."""
        if not attrs:
            return
        self._check_columns(attrs)
        assignments = ", ".join(f"{c} = %s" for c in attrs)
        self.store.execute(
            f"UPDATE {self.profile.table} SET {assignments} WHERE id = %s",
            [*attrs.values(), identity_id],
        )

    def get_login_account(self, identity_id: int) -> LoginAccount | None:
        row = self.store.get(
            f"SELECT id, username, role, is_approved, email FROM users "
            f"WHERE {self.profile.account_fk_column} = %s",
            (identity_id,),
        )
        return LoginAccount.from_row(row, identity_id) if row else None

    def insert_login_account(self, account: LoginAccount, password: str) -> int:
        """Insert a login account; raises UniqueConflictError when the username is taken."""
        row = self.store.insert(
            f"INSERT INTO users (username, password, role, {self.profile.account_fk_column}, "
            f"is_approved, email) VALUES (%s, %s, %s, %s, %s, %s) RETURNING id",
            (account.username, password, account.role, account.identity_id,
             account.is_approved, account.email),
        )
        return int(row["id"])

    def update_login_account(
        self, account_id: int, *, email: str | None, is_approved: bool, username: str | None = None
    ) -> None:
        assignments = ["is_approved = %s"]
        params: list[Any] = [is_approved]
        if email:
            assignments.append("email = %s")
            params.append(email)
        if username:
            assignments.append("username = %s")
            params.append(username)
        params.append(account_id)
        self.store.execute(f"UPDATE users SET {', '.join(assignments)} WHERE id = %s", params)

    def ensure_grade_aggregate(self, identity_id: int) -> bool:
        """Insert the grades row if absent. Returns True when a row was created."""
        if not self.profile.has_grade_aggregate:
            return False
        created = self.store.execute(
            "INSERT INTO grades (cadet_id) VALUES (%s) ON CONFLICT (cadet_id) DO NOTHING",
            (identity_id,),
        )
        return created > 0


class AttendanceRepository:
    """Attendance ledger and presence total for cadets."""

    def __init__(self, store: PgStore) -> None:
        self.store = store

    def upsert_attendance(
        self, training_day_id: int, cadet_id: int, status: AttendanceStatus, remarks: str | None
    ) -> str:
        """Insert or update the (day, cadet) record. Returns 'inserted' or 'updated'."""
        row = self.store.insert(
            "INSERT INTO attendance_records (training_day_id, cadet_id, status, remarks) "
            "VALUES (%s, %s, %s, %s) "
            "ON CONFLICT (training_day_id, cadet_id) "
            "DO UPDATE SET status = EXCLUDED.status, remarks = EXCLUDED.remarks "
            "RETURNING (xmax = 0) AS inserted",
            (training_day_id, cadet_id, status.value, remarks or ""),
        )
        return "inserted" if row.get("inserted") else "updated"

    def count_attendance(self, cadet_id: int, statuses: Iterable[AttendanceStatus]) -> int:
        values = sorted(s.value for s in statuses)
        if not values:
            return 0
        row = self.store.get(
            "SELECT COUNT(*) AS count FROM attendance_records "
            "WHERE cadet_id = %s AND status = ANY(%s)",
            (cadet_id, values),
        )
        return int(row["count"]) if row else 0

    def write_attendance_total(self, cadet_id: int, count: int) -> None:
        """Overwrite grades.attendance_present, creating the grades row when missing."""
        changed = self.store.execute(
            "UPDATE grades SET attendance_present = %s WHERE cadet_id = %s", (count, cadet_id)
        )
        if changed == 0:
            self.store.execute(
                "INSERT INTO grades (cadet_id, attendance_present) VALUES (%s, %s) "
                "ON CONFLICT (cadet_id) DO UPDATE SET attendance_present = EXCLUDED.attendance_present",
                (cadet_id, count),
            )


class Repositories:
    """Repository bundle handed to the import pipeline."""

    def __init__(self, store: PgStore) -> None:
        self.store = store
        self.attendance = AttendanceRepository(store)
        self._roster: dict[IdentityRole, RosterRepository] = {}

    def roster(self, role: IdentityRole) -> RosterRepository:
        if role not in self._roster:
            self._roster[role] = RosterRepository(self.store, role)
        return self._roster[role]
