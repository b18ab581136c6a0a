from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the roster reconciliation engine.

The loader in roster_recon/config/loader.py builds these from YAML; library
callers can construct ImportConfig() directly and get the defaults below.
"""

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class MatchingConfig:
    """Acceptance thresholds for name matching.

    max_distance and max_relative_distance are tunables, not derived values:
    a fuzzy match is accepted when distance <= max_distance and
    distance < max_relative_distance * len(candidate name).
    """
    max_distance: int = 5
    max_relative_distance: float = 0.4
    min_name_length: int = 3  # unstructured residues of this length or less are noise


@dataclass(frozen=True)
class OcrConfig:
    language: str = "eng"  # Tesseract language code
    tesseract_cmd: str | None = None  # None = resolve tesseract from PATH


@dataclass(frozen=True)
class AccountConfig:
    username_max_attempts: int = 6


@dataclass(frozen=True)
class FetchConfig:
    timeout_seconds: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    max_redirects: int = 5


@dataclass(frozen=True)
class ErrorReportConfig:
    max_reported: int = 10  # errors returned to the caller; the JSONL log keeps all
    log_directory: str = "./logs"


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    ocr: OcrConfig = field(default_factory=OcrConfig)
    accounts: AccountConfig = field(default_factory=AccountConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    errors: ErrorReportConfig = field(default_factory=ErrorReportConfig)
