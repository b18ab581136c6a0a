from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Protocol

from rapidfuzz.distance import Levenshtein

from ..models.config_models import MatchingConfig
from ..models.identity import Identity
from ..models.match_result import MatchResult, MatchStrategy
from ..models.row_data import NormalizedRecord

"""Identity resolution cascade.

Order (first success wins):
    1. fuzzy name   - against the population snapshot taken once per batch
    2. identifier   - exact natural-key lookup in the store
    3. email        - case-insensitive lookup in the store
    4. exact name   - case-insensitive first + last lookup in the store
    5. none         - MatchResult.no_match()

Fuzzy acceptance is two-part: distance <= max_distance AND
distance < max_relative_distance * len(name). Both numbers come from
MatchingConfig.
"""

__all__ = [
    "IdentityLookup",
    "IdentityResolver",
    "canonical",
    "name_renderings",
    "split_full_name",
]

_WS_RE = re.compile(r"\s+")


class IdentityLookup(Protocol):
    def find_by_key(self, key: str) -> Identity | None: ...

    def find_by_email(self, email: str) -> Identity | None: ...

    def find_by_name(self, first_name: str, last_name: str) -> Identity | None: ...


def canonical(text: str) -> str:
    """Case-fold and collapse whitespace."""
    return _WS_RE.sub(" ", text).strip().casefold()


def name_renderings(identity: Identity) -> tuple[str, ...]:
    first = canonical(identity.first_name)
    last = canonical(identity.last_name)
    return (
        f"{first} {last}",
        f"{last} {first}",
        f"{last}, {first}",
        f"{first}, {last}",
    )


def split_full_name(name: str) -> tuple[str, str] | None:
    """Split a full name into (first, last).

    "Dela Cruz, Juan" -> ("Juan", "Dela Cruz"); "Juan Dela Cruz" -> ("Juan Dela", "Cruz").
    Returns None when the name has a single part.
    """
    text = _WS_RE.sub(" ", name).strip()
    if "," in text:
        last, _, first = text.partition(",")
        first, last = first.strip(), last.strip()
    else:
        head, _, tail = text.rpartition(" ")
        first, last = head.strip(), tail.strip()
    if not first or not last:
        return None
    return first, last


class IdentityResolver:
    """Resolve NormalizedRecords against one role's population.

    Args:
        population: snapshot of known identities, fetched once per batch
        lookup: store-backed exact lookups (RosterRepository)
        matching: acceptance thresholds
    """

    def __init__(
        self,
        population: Sequence[Identity],
        lookup: IdentityLookup,
        matching: MatchingConfig | None = None,
    ) -> None:
        self.population = tuple(population)
        self.lookup = lookup
        self.matching = matching or MatchingConfig()
        self._renderings = [(identity, name_renderings(identity)) for identity in self.population]

    def best_fuzzy(self, name: str) -> tuple[Identity | None, int | None]:
        """Identity with the globally minimal distance (first wins on ties)."""
        candidate = canonical(name)
        best: Identity | None = None
        best_distance: int | None = None
        for identity, renderings in self._renderings:
            for rendering in renderings:
                d = Levenshtein.distance(candidate, rendering)
                if best_distance is None or d < best_distance:
                    best, best_distance = identity, d
            if best_distance == 0:
                break
        return best, best_distance

    def accepts(self, name: str, distance: int) -> bool:
        length = len(canonical(name))
        return (
            distance <= self.matching.max_distance
            and distance < self.matching.max_relative_distance * length
        )

    def resolve(self, record: NormalizedRecord) -> MatchResult:
        if record.name and self._renderings:
            identity, distance = self.best_fuzzy(record.name)
            if identity is not None and distance is not None and self.accepts(record.name, distance):
                return MatchResult(identity, MatchStrategy.FUZZY_NAME, distance)

        if record.student_id:
            identity = self.lookup.find_by_key(record.student_id)
            if identity is not None:
                return MatchResult(identity, MatchStrategy.STUDENT_ID)

        if record.email:
            identity = self.lookup.find_by_email(record.email)
            if identity is not None:
                return MatchResult(identity, MatchStrategy.EMAIL)

        parts: tuple[str, str] | None = None
        if record.first_name and record.last_name:
            parts = (record.first_name, record.last_name)
        elif record.name:
            parts = split_full_name(record.name)
        if parts is not None:
            identity = self.lookup.find_by_name(*parts)
            if identity is not None:
                return MatchResult(identity, MatchStrategy.EXACT_NAME)

        return MatchResult.no_match()
