from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    AccountConfig,
    DatabaseConfig,
    ErrorReportConfig,
    FetchConfig,
    ImportConfig,
    MatchingConfig,
    OcrConfig,
)

"""Config loader.

Responsibilities:
- Load YAML config (config/import.yml by default)
- Validate against the JSON schema shipped next to this module
- Apply defaults for every omitted section or key
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the data
            fails validation (unknown keys, wrong types, out-of-range values).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def build_config(data: dict[str, Any]) -> ImportConfig:
    """Build ImportConfig from already-validated mapping data."""
    db_raw = _section(data, "database")
    matching_raw = _section(data, "matching")
    ocr_raw = _section(data, "ocr")
    accounts_raw = _section(data, "accounts")
    fetch_raw = _section(data, "fetch")
    errors_raw = _section(data, "errors")

    defaults = ImportConfig()
    return ImportConfig(
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
        matching=MatchingConfig(
            max_distance=matching_raw.get("max_distance", defaults.matching.max_distance),
            max_relative_distance=float(
                matching_raw.get("max_relative_distance", defaults.matching.max_relative_distance)
            ),
            min_name_length=matching_raw.get("min_name_length", defaults.matching.min_name_length),
        ),
        ocr=OcrConfig(
            language=ocr_raw.get("language", defaults.ocr.language),
            tesseract_cmd=ocr_raw.get("tesseract_cmd"),
        ),
        accounts=AccountConfig(
            username_max_attempts=accounts_raw.get(
                "username_max_attempts", defaults.accounts.username_max_attempts
            ),
        ),
        fetch=FetchConfig(
            timeout_seconds=float(fetch_raw.get("timeout_seconds", defaults.fetch.timeout_seconds)),
            user_agent=fetch_raw.get("user_agent", defaults.fetch.user_agent),
            max_redirects=fetch_raw.get("max_redirects", defaults.fetch.max_redirects),
        ),
        errors=ErrorReportConfig(
            max_reported=errors_raw.get("max_reported", defaults.errors.max_reported),
            log_directory=errors_raw.get("log_directory", defaults.errors.log_directory),
        ),
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config validation failed: top level must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    return build_config(data)
