"""Domain models for the roster reconciliation engine.

This package contains the configuration, row, identity and result models used
throughout the import pipeline.
"""

from .config_models import (
    AccountConfig,
    DatabaseConfig,
    ErrorReportConfig,
    FetchConfig,
    ImportConfig,
    MatchingConfig,
    OcrConfig,
)
from .error_record import ErrorRecord
from .identity import ROLE_PROFILES, Identity, IdentityRole, LoginAccount, RoleProfile
from .match_result import MatchResult, MatchStrategy
from .processing_result import ImportContext, ImportResult
from .row_data import COUNTED_STATUSES, AttendanceStatus, NormalizedRecord, RawRow

__all__ = [
    # Configuration models
    "AccountConfig",
    "DatabaseConfig",
    "ErrorReportConfig",
    "FetchConfig",
    "ImportConfig",
    "MatchingConfig",
    "OcrConfig",
    # Row models
    "AttendanceStatus",
    "COUNTED_STATUSES",
    "NormalizedRecord",
    "RawRow",
    # Identity models
    "Identity",
    "IdentityRole",
    "LoginAccount",
    "ROLE_PROFILES",
    "RoleProfile",
    # Results
    "ErrorRecord",
    "ImportContext",
    "ImportResult",
    "MatchResult",
    "MatchStrategy",
]
