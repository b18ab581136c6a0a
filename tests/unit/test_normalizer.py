from __future__ import annotations

import pytest

from roster_recon.models.row_data import AttendanceStatus, RawRow
from roster_recon.services.normalizer import (
    FIELD_ALIASES,
    NOISE_WORDS,
    clean_name_candidate,
    is_noise,
    normalize_header,
    normalize_row,
    normalize_structured,
    normalize_unstructured,
)


def _line(text: str, n: int = 1) -> RawRow:
    return RawRow(row_number=n, raw=text)


def test_normalize_header_ignores_case_and_punctuation():
    assert normalize_header(" Student-ID ") == "studentid"
    assert normalize_header("E-mail") == "email"
    assert normalize_header("First Name") == normalize_header("first_name")


def test_structured_aliases_are_matched_loosely():
    row = RawRow(1, values={
        "STUDENT NO.": "2021-00123",
        "surname": "Dela Cruz",
        "Given Name": "Juan",
        "e-mail": "juan@example.com",
        "Status": "Excused",
        "Remarks": "sick",
        "Platoon": "Alpha",
    })
    rec = normalize_structured(row)
    assert rec.structured is True
    assert rec.student_id == "2021-00123"
    assert rec.first_name == "Juan"
    assert rec.last_name == "Dela Cruz"
    assert rec.email == "juan@example.com"
    assert rec.status is AttendanceStatus.EXCUSED
    assert rec.remarks == "sick"
    assert rec.attributes == {"platoon": "Alpha"}


def test_structured_first_alias_with_value_wins():
    row = RawRow(1, values={"ID": "999999", "Student ID": "2021-00123"})
    # "Student ID" precedes "ID" in the alias list
    assert normalize_structured(row).student_id == "2021-00123"


def test_structured_blank_status_means_present_and_unknown_stays_unknown():
    assert normalize_structured(RawRow(1, values={"Name": "Juan"})).status is AttendanceStatus.PRESENT
    assert normalize_structured(RawRow(1, values={"Name": "Juan", "Status": None})).status is AttendanceStatus.PRESENT
    assert normalize_structured(RawRow(1, values={"Name": "Juan", "Status": "maybe"})).status is AttendanceStatus.UNKNOWN


def test_structured_float_identifier_is_cleaned():
    rec = normalize_structured(RawRow(1, values={"Student ID": "2021001.0"}))
    assert rec.student_id == "2021001"


def test_alias_table_is_immutable():
    assert isinstance(FIELD_ALIASES, tuple)
    assert isinstance(NOISE_WORDS, frozenset)


def test_unstructured_extracts_name_status_id_and_email():
    rec = normalize_unstructured(_line("12. Dela Cruz, Juan  2021-00123  juan@example.com  PRESENT"))
    assert rec.structured is False
    assert rec.name == "Dela Cruz, Juan"
    assert rec.status is AttendanceStatus.PRESENT
    assert rec.student_id == "2021-00123"
    assert rec.email == "juan@example.com"


def test_unstructured_without_keyword_is_unknown():
    rec = normalize_unstructured(_line("Juan Dela Cruz"))
    assert rec.status is AttendanceStatus.UNKNOWN
    assert rec.name == "Juan Dela Cruz"


def test_unstructured_status_priority_order():
    # present is checked before late
    assert normalize_unstructured(_line("Juan Dela Cruz late present")).status is AttendanceStatus.PRESENT
    assert normalize_unstructured(_line("Juan Dela Cruz - Absent")).status is AttendanceStatus.ABSENT


def test_keyword_inside_a_word_is_not_a_status():
    rec = normalize_unstructured(_line("Pedro Latero"))
    assert rec.status is AttendanceStatus.UNKNOWN
    assert rec.name == "Pedro Latero"


@pytest.mark.parametrize("line", [
    "ATTENDANCE SHEET",
    "Page 1 of 3",
    "Names",
    "Signature",
    "Battalion Company Platoon",
    "Prepared by:",
    "Generated by the registrar system",
    "No. Name Status",
])
def test_noise_lines_yield_no_name(line):
    assert normalize_unstructured(_line(line)).name is None


def test_header_footer_line_drops_identifiers_too():
    rec = normalize_unstructured(_line("Certified correct 2021-00123"))
    assert rec.name is None
    assert rec.student_id is None
    assert not rec.has_identifying_data


@pytest.mark.parametrize("line", [
    "First Semester, S.Y. 2023-2024",
    "School Year 2024-2025",
    "Academic Year 2023-2024",
    "Summer Term 2024",
    "Date: 20240115",
    "Page 1 of 3",
])
def test_term_and_date_headers_carry_no_identifiers(line):
    rec = normalize_unstructured(_line(line))
    assert rec.name is None
    assert rec.student_id is None
    assert not rec.has_identifying_data


def test_identifier_only_line_keeps_its_identifier():
    rec = normalize_unstructured(_line("2021-00003 absent"))
    assert rec.name is None
    assert rec.student_id == "2021-00003"
    assert rec.status is AttendanceStatus.ABSENT


def test_split_abbreviations_count_as_noise():
    assert is_noise("S.Y.")
    assert is_noise("First Semester, A.Y.")
    assert not is_noise("Juan A. Cruz")


def test_short_residue_is_discarded():
    assert normalize_unstructured(_line("12. Li")).name is None
    assert normalize_unstructured(_line("1. Abc")).name is None
    assert normalize_unstructured(_line("1. Abcd")).name == "Abcd"


def test_min_name_length_is_configurable():
    assert normalize_unstructured(_line("Abcd"), min_name_length=5).name is None


def test_clean_name_candidate_strips_noise():
    text = "3) Santos, Maria C. - maria@x.org (Late) #45"
    assert clean_name_candidate(text, AttendanceStatus.LATE) == "Santos, Maria C"


def test_is_noise_accepts_real_names():
    assert not is_noise("Juan Dela Cruz")
    assert is_noise("students")
    assert is_noise("Cadet Officers")


def test_normalize_row_dispatches_on_shape():
    assert normalize_row(RawRow(1, values={"Name": "Juan Dela Cruz"})).structured is True
    assert normalize_row(_line("Juan Dela Cruz")).structured is False
