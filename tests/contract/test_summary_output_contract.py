from __future__ import annotations

import re
from pathlib import Path

from roster_recon.models.processing_result import ImportContext
from roster_recon.services.pipeline import ImportPipeline

"""SUMMARY line format contract."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+source=(\S+)\s+mode=(roster|attendance)\s+rows=([0-9]+)\s+"
    r"success=([0-9]+)\s+failed=([0-9]+)\s+skipped=([0-9]+)\s+elapsed_sec=([0-9]+\.?[0-9]*)$"
)


def _summary_lines(out: str) -> list[str]:
    return [line for line in out.splitlines() if line.startswith("SUMMARY ")]


def test_summary_pattern_example_line():
    line = "SUMMARY source=roster.xlsx mode=roster rows=4 success=3 failed=0 skipped=1 elapsed_sec=0.84"
    assert SUMMARY_PATTERN.match(line)


def test_roster_import_emits_one_summary(fake_repos, temp_workdir: Path, capsys):
    ImportPipeline(fake_repos).import_file(b"Student ID,Name\n2021-00001,Juan Dela Cruz\n", "roster.csv")
    (line,) = _summary_lines(capsys.readouterr().out)
    m = SUMMARY_PATTERN.match(line)
    assert m
    assert m.group(1, 2, 3, 4) == ("roster.csv", "roster", "1", "1")


def test_attendance_summary_counts_add_up(fake_repos, juan_db, temp_workdir: Path, capsys):
    data = b"Name,Status\nJuan Dela Cruz,present\nNobody Known,absent\n"
    ImportPipeline(fake_repos).import_file(data, "day.csv", ImportContext(training_day_id=2))
    (line,) = _summary_lines(capsys.readouterr().out)
    m = SUMMARY_PATTERN.match(line)
    assert m
    rows, success, failed, skipped = (int(g) for g in m.group(3, 4, 5, 6))
    assert m.group(2) == "attendance"
    assert rows == success + failed + skipped == 2
    assert (success, skipped) == (1, 1)
