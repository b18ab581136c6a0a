from __future__ import annotations

from roster_recon.models.identity import IdentityRole
from roster_recon.models.processing_result import MAX_REPORTED_ERRORS, ImportContext, ImportResult


def test_context_defaults_to_cadet_roster():
    ctx = ImportContext()
    assert ctx.role is IdentityRole.CADET
    assert not ctx.is_attendance
    assert ImportContext(training_day_id=4).is_attendance


def test_result_counters_and_message():
    result = ImportResult()
    result.record_success()
    result.record_success()
    result.record_skip()
    result.record_failure("2021-1: duplicate key")
    assert result.processed == 4
    assert result.message == "Import complete. Success: 2, Failed: 1, Skipped: 1"


def test_error_messages_are_capped():
    result = ImportResult()
    for i in range(MAX_REPORTED_ERRORS + 5):
        result.record_failure(f"row {i}: bad")
    assert result.fail_count == MAX_REPORTED_ERRORS + 5
    assert len(result.errors) == MAX_REPORTED_ERRORS
    assert result.errors[0] == "row 0: bad"


def test_custom_cap_of_zero_keeps_counting():
    result = ImportResult(max_errors=0)
    result.record_failure("x")
    assert result.fail_count == 1
    assert result.errors == []


def test_to_dict_returns_a_copy():
    result = ImportResult()
    result.record_failure("x")
    payload = result.to_dict()
    payload["errors"].append("y")
    assert result.errors == ["x"]
    assert set(payload) == {"message", "errors"}
