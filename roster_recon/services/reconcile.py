from __future__ import annotations

import logging
import random
import re
from collections.abc import Iterator
from enum import Enum
from typing import Any

from ..db.repository import RosterRepository
from ..db.store import UniqueConflictError
from ..models.config_models import AccountConfig
from ..models.identity import LoginAccount, RoleProfile
from ..models.match_result import MatchResult
from ..models.row_data import NormalizedRecord
from .resolver import split_full_name

"""Roster reconciliation: upsert the identity, its login account and its grade aggregate.

Outcomes per row:
    matched                           -> UPDATED (non-blank fields only, key untouched)
    unmatched, identifier present     -> INSERTED (text lines also need a name)
    unmatched structured, name only   -> RowError(MISSING_IDENTIFIER)
    unmatched otherwise               -> SKIPPED

Login accounts are created approved with PLACEHOLDER_PASSWORD. A username
uniqueness conflict walks the candidate cascade:
    base, base1, first.last, last.first, base<random 4 digits>...
until AccountConfig.username_max_attempts candidates have been tried.
"""

__all__ = [
    "RowError",
    "RosterOutcome",
    "PLACEHOLDER_PASSWORD",
    "clean_username",
    "candidate_usernames",
    "derive_name_parts",
    "identity_attributes",
    "ensure_login_account",
    "reconcile_roster_row",
]

logger = logging.getLogger(__name__)

# Never a valid password hash; these accounts log in through a separate channel
PLACEHOLDER_PASSWORD = "!imported-account-no-password"

_USERNAME_STRIP_RE = re.compile(r"[^a-z0-9._@-]")
_IDENT_SPLIT_RE = re.compile(r"[._, ]+")


class RowError(Exception):
    """Row-level failure carrying an UPPER_SNAKE error type."""

    def __init__(self, error_type: str, message: str) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message


class RosterOutcome(Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


def clean_username(text: str | None) -> str:
    if not text:
        return ""
    return _USERNAME_STRIP_RE.sub("", text.strip().lower().replace(" ", ""))


def candidate_usernames(
    base: str,
    first_name: str | None,
    last_name: str | None,
    max_attempts: int,
    rng: random.Random | None = None,
) -> Iterator[str]:
    """Yield at most max_attempts distinct username candidates, base first."""
    rng = rng or random.Random()
    first = clean_username(first_name)
    last = clean_username(last_name)
    fixed = [base, f"{base}1"]
    if first and last:
        fixed += [f"{first}.{last}", f"{last}.{first}"]

    seen: set[str] = set()
    produced = 0
    for name in fixed:
        if produced >= max_attempts:
            return
        if name and name not in seen:
            seen.add(name)
            produced += 1
            yield name
    # random 4-digit suffixes until the attempt budget is spent
    while produced < max_attempts:
        name = f"{base}{rng.randint(1000, 9999)}"
        if name in seen:
            continue
        seen.add(name)
        produced += 1
        yield name


def _title(text: str) -> str:
    return " ".join(part[:1].upper() + part[1:].lower() for part in text.split())


def derive_name_parts(record: NormalizedRecord) -> tuple[str, str]:
    """First and last name for a new identity.

    Uses explicit columns, then a split of the full name, then the identifier's
    local part ("juan.delacruz@x" -> "Juan", "Delacruz"), then Unknown / Cadet.
    """
    first = record.first_name
    last = record.last_name
    if (not first or not last) and record.name:
        parts = split_full_name(record.name)
        if parts is not None:
            first = first or parts[0]
            last = last or parts[1]
        else:
            first = first or record.name
    if first and last:
        return first, last

    base = (record.identifier or "").split("@")[0]
    pieces = [p for p in _IDENT_SPLIT_RE.split(base) if p]
    if len(pieces) >= 2:
        first = first or _title(pieces[0])
        last = last or _title(" ".join(pieces[1:]))
    else:
        first = first or _title(base) or "Unknown"
        last = last or "Cadet"
    return first, last


def identity_attributes(record: NormalizedRecord, profile: RoleProfile) -> dict[str, Any]:
    """Non-blank mutable columns from the record (no natural key)."""
    attrs: dict[str, Any] = {}
    for column in ("first_name", "middle_name", "last_name", "suffix_name", "email"):
        value = getattr(record, column)
        if value:
            attrs[column] = value
    for column in profile.attribute_columns:
        value = record.attributes.get(column)
        if value:
            attrs[column] = value
    return attrs


def _is_username_conflict(exc: UniqueConflictError) -> bool:
    return exc.constraint is None or "username" in exc.constraint


def ensure_login_account(
    repo: RosterRepository,
    identity_id: int,
    record: NormalizedRecord,
    first_name: str,
    last_name: str,
    accounts: AccountConfig | None = None,
    rng: random.Random | None = None,
) -> LoginAccount:
    """Create or refresh the single login account linked to identity_id."""
    accounts = accounts or AccountConfig()
    requested = clean_username(record.username)

    existing = repo.get_login_account(identity_id)
    if existing is not None:
        rename = requested if requested and requested != existing.username else None
        try:
            repo.update_login_account(
                existing.id, email=record.email, is_approved=True, username=rename
            )
        except UniqueConflictError:
            logger.warning(
                "username %r already taken; keeping %r for %s",
                rename, existing.username, record.label,
            )
            repo.update_login_account(existing.id, email=record.email, is_approved=True)
            rename = None
        return LoginAccount(
            id=existing.id,
            username=rename or existing.username,
            role=existing.role,
            identity_id=identity_id,
            is_approved=True,
            email=record.email or existing.email,
        )

    base = requested or clean_username(first_name) or clean_username(record.identifier)
    if not base:
        raise RowError("INVALID_ROW", "cannot derive a username")

    tried: list[str] = []
    for username in candidate_usernames(
        base, first_name, last_name, accounts.username_max_attempts, rng
    ):
        account = LoginAccount(
            id=None,
            username=username,
            role=repo.profile.account_role,
            identity_id=identity_id,
            is_approved=True,
            email=record.email,
        )
        try:
            account_id = repo.insert_login_account(account, PLACEHOLDER_PASSWORD)
        except UniqueConflictError as e:
            if not _is_username_conflict(e):
                raise
            tried.append(username)
            logger.debug("username %r taken, trying next candidate", username)
            continue
        if tried:
            logger.info("username %r taken; created %r for %s", base, username, record.label)
        return LoginAccount(
            id=account_id,
            username=username,
            role=account.role,
            identity_id=identity_id,
            is_approved=True,
            email=record.email,
        )
    raise RowError(
        "USERNAME_EXHAUSTED",
        f"no free username after {len(tried)} attempts (tried: {', '.join(tried)})",
    )


def reconcile_roster_row(
    record: NormalizedRecord,
    match: MatchResult,
    repo: RosterRepository,
    accounts: AccountConfig | None = None,
    rng: random.Random | None = None,
) -> RosterOutcome:
    """Apply one roster row to the store."""
    profile = repo.profile

    if match.matched and match.identity is not None:
        identity = match.identity
        repo.update_identity(identity.id, identity_attributes(record, profile))
        first = record.first_name or identity.first_name
        last = record.last_name or identity.last_name
        identity_id = identity.id
        outcome = RosterOutcome.UPDATED
    else:
        identifier = record.identifier
        if not identifier:
            if record.structured and record.has_identifying_data:
                raise RowError("MISSING_IDENTIFIER", "cannot create without identifier")
            return RosterOutcome.SKIPPED
        if not record.structured and not record.name:
            # a bare number on a text line is not enough to create a person
            return RosterOutcome.SKIPPED

        first, last = derive_name_parts(record)
        existing = repo.find_by_key(identifier)
        if existing is not None:
            repo.update_identity(existing.id, identity_attributes(record, profile))
            identity_id = existing.id
            outcome = RosterOutcome.UPDATED
        else:
            attrs = identity_attributes(record, profile)
            attrs.update({profile.key_column: identifier, "first_name": first, "last_name": last})
            for column, default in profile.insert_defaults:
                attrs.setdefault(column, default)
            identity_id = repo.insert_identity(attrs)
            outcome = RosterOutcome.INSERTED
            logger.debug("inserted %s id=%s key=%s", profile.table, identity_id, identifier)

    account = ensure_login_account(repo, identity_id, record, first, last, accounts, rng)
    if account.is_approved:
        repo.ensure_grade_aggregate(identity_id)
    return outcome
