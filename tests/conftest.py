# Shared pytest fixtures
from __future__ import annotations

import itertools
import tempfile
from pathlib import Path
from typing import Any

import pytest

from roster_recon.db.store import StoreError, UniqueConflictError
from roster_recon.logging.init import reset_logging
from roster_recon.models.identity import Identity, IdentityRole, LoginAccount
from roster_recon.models.row_data import AttendanceStatus


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: rotc
matching:
  max_distance: 5
  max_relative_distance: 0.4
accounts:
  username_max_attempts: 6
errors:
  max_reported: 10
  log_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


# ---------------------------------------------------------------------------
# In-memory repositories with the same contracts as roster_recon.db.repository
# ---------------------------------------------------------------------------

class FakeDatabase:
    """Tables as dicts. fail_keys makes insert/update of those natural keys raise StoreError."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[int, dict[str, Any]]] = {"cadets": {}, "training_staff": {}}
        self.users: dict[int, dict[str, Any]] = {}
        self.grades: dict[int, dict[str, Any]] = {}
        self.attendance: dict[tuple[int, int], dict[str, Any]] = {}
        self.fail_keys: set[str] = set()
        self._ids = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    def add_identity(self, role: IdentityRole, key: str, first: str, last: str, **extra: Any) -> int:
        ident = self.next_id()
        row = {role.profile.key_column: key, "first_name": first, "last_name": last, **extra}
        self.tables[role.profile.table][ident] = row
        return ident


class FakeRosterRepository:
    def __init__(self, db: FakeDatabase, role: IdentityRole) -> None:
        self.db = db
        self.role = role
        self.profile = role.profile
        self.calls: list[str] = []

    @property
    def rows(self) -> dict[int, dict[str, Any]]:
        return self.db.tables[self.profile.table]

    def _identity(self, ident: int) -> Identity:
        row = self.rows[ident]
        return Identity(
            id=ident,
            key=row.get(self.profile.key_column) or "",
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            middle_name=row.get("middle_name"),
            suffix_name=row.get("suffix_name"),
            email=row.get("email"),
        )

    def list_identities(self) -> list[Identity]:
        self.calls.append("list_identities")
        return [self._identity(i) for i in sorted(self.rows)]

    def find_by_key(self, key: str) -> Identity | None:
        for ident, row in sorted(self.rows.items()):
            if row.get(self.profile.key_column) == key:
                return self._identity(ident)
        return None

    def find_by_email(self, email: str) -> Identity | None:
        for ident, row in sorted(self.rows.items()):
            if (row.get("email") or "").lower() == email.lower():
                return self._identity(ident)
        return None

    def find_by_name(self, first_name: str, last_name: str) -> Identity | None:
        for ident, row in sorted(self.rows.items()):
            if ((row.get("first_name") or "").lower() == first_name.lower()
                    and (row.get("last_name") or "").lower() == last_name.lower()):
                return self._identity(ident)
        return None

    def insert_identity(self, attrs: dict[str, Any]) -> int:
        key = attrs[self.profile.key_column]
        if key in self.db.fail_keys:
            raise StoreError("simulated storage failure")
        if self.find_by_key(key) is not None:
            raise UniqueConflictError("duplicate key", constraint=f"{self.profile.table}_key")
        ident = self.db.next_id()
        self.rows[ident] = dict(attrs)
        return ident

    def update_identity(self, identity_id: int, attrs: dict[str, Any]) -> None:
        if not attrs:
            return
        if self.rows[identity_id].get(self.profile.key_column) in self.db.fail_keys:
            raise StoreError("simulated storage failure")
        self.rows[identity_id].update(attrs)

    def _account_for(self, identity_id: int) -> tuple[int, dict[str, Any]] | None:
        for uid, user in self.db.users.items():
            if user.get(self.profile.account_fk_column) == identity_id:
                return uid, user
        return None

    def get_login_account(self, identity_id: int) -> LoginAccount | None:
        found = self._account_for(identity_id)
        if found is None:
            return None
        uid, user = found
        return LoginAccount.from_row({"id": uid, **user}, identity_id)

    def _username_taken(self, username: str, except_id: int | None = None) -> bool:
        return any(u["username"] == username and uid != except_id for uid, u in self.db.users.items())

    def insert_login_account(self, account: LoginAccount, password: str) -> int:
        if self._username_taken(account.username):
            raise UniqueConflictError("duplicate key", constraint="users_username_key")
        if self._account_for(account.identity_id) is not None:
            raise UniqueConflictError("duplicate key", constraint=f"users_{self.profile.account_fk_column}_key")
        uid = self.db.next_id()
        self.db.users[uid] = {
            "username": account.username,
            "password": password,
            "role": account.role,
            self.profile.account_fk_column: account.identity_id,
            "is_approved": account.is_approved,
            "email": account.email,
        }
        return uid

    def update_login_account(
        self, account_id: int, *, email: str | None, is_approved: bool, username: str | None = None
    ) -> None:
        if username and self._username_taken(username, except_id=account_id):
            raise UniqueConflictError("duplicate key", constraint="users_username_key")
        user = self.db.users[account_id]
        user["is_approved"] = is_approved
        if email:
            user["email"] = email
        if username:
            user["username"] = username

    def ensure_grade_aggregate(self, identity_id: int) -> bool:
        if not self.profile.has_grade_aggregate or identity_id in self.db.grades:
            return False
        self.db.grades[identity_id] = {"attendance_present": 0}
        return True


class FakeAttendanceRepository:
    def __init__(self, db: FakeDatabase) -> None:
        self.db = db

    def upsert_attendance(
        self, training_day_id: int, cadet_id: int, status: AttendanceStatus, remarks: str | None
    ) -> str:
        key = (training_day_id, cadet_id)
        action = "updated" if key in self.db.attendance else "inserted"
        self.db.attendance[key] = {"status": status.value, "remarks": remarks or ""}
        return action

    def count_attendance(self, cadet_id: int, statuses) -> int:
        values = {s.value for s in statuses}
        return sum(
            1 for (_, cid), rec in self.db.attendance.items()
            if cid == cadet_id and rec["status"] in values
        )

    def write_attendance_total(self, cadet_id: int, count: int) -> None:
        self.db.grades.setdefault(cadet_id, {})["attendance_present"] = count


class FakeRepositories:
    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self.attendance = FakeAttendanceRepository(db)
        self._roster: dict[IdentityRole, FakeRosterRepository] = {}

    def roster(self, role: IdentityRole) -> FakeRosterRepository:
        if role not in self._roster:
            self._roster[role] = FakeRosterRepository(self.db, role)
        return self._roster[role]


@pytest.fixture()
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def fake_repos(fake_db: FakeDatabase) -> FakeRepositories:
    return FakeRepositories(fake_db)


@pytest.fixture()
def juan_db(fake_db: FakeDatabase) -> FakeDatabase:
    """One known cadet: Juan Dela Cruz, student id 2021-00123."""
    fake_db.add_identity(IdentityRole.CADET, "2021-00123", "Juan", "Dela Cruz", email="juan@example.com")
    return fake_db
