from __future__ import annotations

from ..models.processing_result import ImportResult

"""SUMMARY line rendering for one import.

Format:
    SUMMARY source={name} mode={roster|attendance} rows={n} success={s} failed={f}
    skipped={k} elapsed_sec={t}
"""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.2f}"


def render_summary_line(source: str, mode: str, result: ImportResult, elapsed_seconds: float) -> str:
    """Render the SUMMARY line for one import.

    Args:
        source: File name or URL that was imported
        mode: "roster" or "attendance"
        result: Counters of the finished import
        elapsed_seconds: Wall time of the import

    Returns:
        SUMMARY line string

    Examples:
        >>> r = ImportResult(success_count=8, fail_count=1, skipped_count=3)
        >>> render_summary_line("roster.xlsx", "roster", r, 2.0)
        'SUMMARY source=roster.xlsx mode=roster rows=12 success=8 failed=1 skipped=3 elapsed_sec=2'
    """
    return (
        f"SUMMARY source={source} "
        f"mode={mode} "
        f"rows={result.processed} "
        f"success={result.success_count} "
        f"failed={result.fail_count} "
        f"skipped={result.skipped_count} "
        f"elapsed_sec={_format_seconds(elapsed_seconds)}"
    )
