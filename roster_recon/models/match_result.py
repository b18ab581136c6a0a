from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .identity import Identity

"""MatchResult: outcome of resolving one NormalizedRecord.

strategy NONE is the explicit "no identity found" variant; the pipeline maps it
to a skip (or, for structured roster rows, to an insert attempt) instead of
relying on a None return.
"""

__all__ = [
    "MatchStrategy",
    "MatchResult",
]


class MatchStrategy(Enum):
    FUZZY_NAME = "fuzzy_name"
    STUDENT_ID = "student_id"
    EMAIL = "email"
    EXACT_NAME = "exact_name"
    NONE = "none"


@dataclass(frozen=True)
class MatchResult:
    identity: Identity | None
    strategy: MatchStrategy
    distance: int | None = None  # only set for FUZZY_NAME

    @property
    def matched(self) -> bool:
        return self.strategy is not MatchStrategy.NONE

    @staticmethod
    def no_match() -> MatchResult:
        return MatchResult(identity=None, strategy=MatchStrategy.NONE)
