from __future__ import annotations

import json
from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from roster_recon.models.error_record import ErrorRecord


def test_create_stamps_utc_time():
    rec = ErrorRecord.create("roster.xlsx", 7, "STORE_ERROR", "duplicate key")
    assert rec.timestamp.endswith("Z")
    parsed = datetime.fromisoformat(rec.timestamp.replace("Z", "+00:00"))
    assert parsed.utcoffset().total_seconds() == 0


def test_json_line_shape():
    rec = ErrorRecord("2024-01-01T00:00:00Z", "https://example.org/r.xlsx", -1, "FETCH_ERROR", "gone")
    data = json.loads(rec.to_json_line())
    assert data == {
        "timestamp": "2024-01-01T00:00:00Z",
        "source": "https://example.org/r.xlsx",
        "row": -1,
        "error_type": "FETCH_ERROR",
        "message": "gone",
    }
    assert "\n" not in rec.to_json_line()


def test_record_is_immutable():
    rec = ErrorRecord.create("a.csv", 1, "STORE_ERROR", "x")
    with pytest.raises(FrozenInstanceError):
        rec.row = 2  # type: ignore[misc]
