from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from roster_recon.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL
from roster_recon.cli.__main__ import main as cli_main

"""Exit code contract: 0 all rows ok or skipped, 2 some rows failed, 1 fatal."""

ROSTER = b"Student ID,Name\n2021-00001,Juan Dela Cruz\n2021-00002,Maria Santos\n"


@pytest.fixture()
def cli_repos(fake_repos):
    with patch("roster_recon.cli.__main__.connect"), \
         patch("roster_recon.cli.__main__.Repositories", return_value=fake_repos):
        yield fake_repos


def test_exit_code_values():
    assert (EXIT_SUCCESS_ALL, EXIT_FATAL, EXIT_PARTIAL_FAILURE) == (0, 1, 2)


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # no config/import.yml in the working directory
    assert cli_main(["init-db"]) == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_all_success(write_config, temp_workdir: Path, cli_repos):
    path = temp_workdir / "data" / "roster.csv"
    path.write_bytes(ROSTER)
    assert cli_main(["roster", str(path)]) == EXIT_SUCCESS_ALL


def test_skipped_rows_do_not_fail(write_config, temp_workdir: Path, cli_repos, juan_db):
    path = temp_workdir / "data" / "day.csv"
    path.write_bytes(b"Name,Status\nNobody Known,present\n")
    assert cli_main(["attendance", str(path), "--day", "1"]) == EXIT_SUCCESS_ALL


def test_exit_code_partial_failure(write_config, temp_workdir: Path, cli_repos, fake_db):
    fake_db.fail_keys.add("2021-00001")
    path = temp_workdir / "data" / "roster.csv"
    path.write_bytes(ROSTER)
    assert cli_main(["roster", str(path)]) == EXIT_PARTIAL_FAILURE


def test_exit_code_request_error(write_config, temp_workdir: Path, cli_repos):
    path = temp_workdir / "data" / "roster.csv"
    path.write_bytes(ROSTER)
    assert cli_main(["attendance", str(path), "--day", "0"]) == EXIT_FATAL
