from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import Protocol

from ..db.repository import AttendanceRepository, RosterRepository
from ..db.store import StoreError
from ..extract import detect_format, extract
from ..extract.ocr import configure_tesseract
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary
from ..models.config_models import ImportConfig
from ..models.error_record import ErrorRecord
from ..models.identity import IdentityRole
from ..models.processing_result import ImportContext, ImportResult
from ..models.row_data import RawRow
from .attendance import record_attendance
from .fetcher import FetchError, RemoteFetcher
from .normalizer import normalize_row
from .progress import ProgressTracker
from .reconcile import RosterOutcome, RowError, reconcile_roster_row
from .resolver import IdentityResolver
from .summary import render_summary_line

"""Import pipeline: buffer or URL -> ImportResult.

Request-level failures (ImportRequestError, UnsupportedFormatError,
FetchError) are raised before any row is touched. Once rows exist, every row
is processed in order and on its own: a failing row is counted, reported
(first max_reported messages) and logged to the JSONL error file, and the
loop moves on. Rows whose identity cannot be resolved are skipped silently.

The identity population is read once per import, before the first row.
"""

__all__ = [
    "ImportRequestError",
    "Repositories",
    "ImportPipeline",
]

logger = logging.getLogger(__name__)


class ImportRequestError(Exception):
    """Raised when an import request is incomplete or inconsistent."""


class Repositories(Protocol):
    attendance: AttendanceRepository

    def roster(self, role: IdentityRole) -> RosterRepository: ...


class ImportPipeline:
    """Run roster and attendance imports against one repository bundle."""

    def __init__(
        self,
        repositories: Repositories,
        config: ImportConfig | None = None,
        fetcher: RemoteFetcher | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.repositories = repositories
        self.config = config or ImportConfig()
        configure_tesseract(self.config.ocr)
        self._fetcher = fetcher
        self._rng = rng

    @property
    def fetcher(self) -> RemoteFetcher:
        if self._fetcher is None:
            self._fetcher = RemoteFetcher(self.config.fetch)
        return self._fetcher

    def _check_context(self, context: ImportContext) -> None:
        if context.is_attendance and context.role is not IdentityRole.CADET:
            raise ImportRequestError(
                f"attendance can only be imported for cadets, not {context.role.value}"
            )
        if context.training_day_id is not None and context.training_day_id <= 0:
            raise ImportRequestError(f"invalid training day id: {context.training_day_id}")

    def import_file(
        self, buffer: bytes, filename: str, context: ImportContext | None = None
    ) -> ImportResult:
        """Import one file buffer. See the module docstring for failure handling."""
        context = context or ImportContext()
        if not filename or not filename.strip():
            raise ImportRequestError("file name is required")
        if not buffer:
            raise ImportRequestError("no file uploaded")
        self._check_context(context)
        fmt = detect_format(filename)

        started = time.perf_counter()
        error_log = ErrorLogBuffer(Path(self.config.errors.log_directory))
        result = ImportResult(max_errors=self.config.errors.max_reported)

        rows = extract(buffer, filename, fmt, self.config.ocr)
        if not rows:
            logger.warning("no rows extracted from %s", filename)
        else:
            self._process_rows(rows, filename, context, result, error_log)

        log_path = error_log.flush()
        if log_path is not None:
            logger.info("row errors written to %s", log_path)
        mode = "attendance" if context.is_attendance else "roster"
        line = render_summary_line(filename, mode, result, time.perf_counter() - started)
        log_summary(line.removeprefix("SUMMARY "))
        return result

    def import_url(self, url: str, context: ImportContext | None = None) -> ImportResult:
        """Fetch a share link and import the downloaded file."""
        context = context or ImportContext()
        if not url or not url.strip():
            raise ImportRequestError("url is required")
        self._check_context(context)
        try:
            resource = self.fetcher.fetch(url)
        except FetchError as e:
            logger.error("could not fetch %s", url)
            error_log = ErrorLogBuffer(Path(self.config.errors.log_directory))
            error_log.append(ErrorRecord.create(url, -1, "FETCH_ERROR", str(e)))
            error_log.flush()
            raise
        return self.import_file(resource.content, resource.filename, context)

    def _process_rows(
        self,
        rows: list[RawRow],
        source: str,
        context: ImportContext,
        result: ImportResult,
        error_log: ErrorLogBuffer,
    ) -> None:
        roster_repo = self.repositories.roster(context.role)
        population = roster_repo.list_identities()
        resolver = IdentityResolver(population, roster_repo, self.config.matching)
        logger.info(
            "reconciling %d rows from %s against %d %s identities",
            len(rows), source, len(population), context.role.value,
        )

        with ProgressTracker(len(rows)) as progress:
            for row in rows:
                label = f"row {row.row_number}"
                try:
                    record = normalize_row(row, self.config.matching)
                    label = record.label
                    match = resolver.resolve(record)
                    if context.is_attendance:
                        if not match.matched or match.identity is None:
                            result.record_skip()
                        else:
                            record_attendance(
                                self.repositories.attendance,
                                context.training_day_id,
                                match.identity,
                                record,
                            )
                            result.record_success()
                    else:
                        outcome = reconcile_roster_row(
                            record, match, roster_repo, self.config.accounts, self._rng
                        )
                        if outcome is RosterOutcome.SKIPPED:
                            result.record_skip()
                        else:
                            result.record_success()
                except RowError as e:
                    self._fail(result, error_log, source, row, label, e.error_type, e.message)
                except StoreError as e:
                    self._fail(result, error_log, source, row, label, "STORE_ERROR", str(e))
                except Exception as e:
                    logger.exception("unexpected error on %s of %s", label, source)
                    self._fail(result, error_log, source, row, label, "UNEXPECTED_ERROR", str(e))
                progress.advance(
                    success=result.success_count,
                    failed=result.fail_count,
                    skipped=result.skipped_count,
                )

    @staticmethod
    def _fail(
        result: ImportResult,
        error_log: ErrorLogBuffer,
        source: str,
        row: RawRow,
        label: str,
        error_type: str,
        message: str,
    ) -> None:
        logger.warning("%s row=%d %s: %s", error_type, row.row_number, label, message)
        result.record_failure(f"{label}: {message}")
        error_log.append(ErrorRecord.create(source, row.row_number, error_type, message))
