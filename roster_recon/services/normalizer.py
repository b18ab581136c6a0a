from __future__ import annotations

import re
from collections.abc import Mapping

from ..models.config_models import MatchingConfig
from ..models.row_data import AttendanceStatus, NormalizedRecord, RawRow

"""Row normalizer: RawRow -> NormalizedRecord.

Structured rows (named columns) are mapped through FIELD_ALIASES, where header
comparison ignores case, punctuation and whitespace and the first alias that
yields a value wins.

Unstructured rows (one free-text line) go through, in order:
    a. status keyword detection (UNKNOWN when none is present)
    b. removal of the status keyword, e-mail addresses, digits and punctuation
       other than comma / period / hyphen
    c. whitespace collapse and list-numbering cleanup
    d. noise rejection (blacklist vocabulary, header/footer phrases); a noise
       line keeps no identifiers either
    e. minimum length check

All tables below are module constants and are passed into the pure functions
as default arguments; nothing here holds mutable state.
"""

__all__ = [
    "FIELD_ALIASES",
    "ATTRIBUTE_ALIASES",
    "NOISE_WORDS",
    "HEADER_FOOTER_PHRASES",
    "STATUS_KEYWORDS",
    "normalize_header",
    "normalize_row",
    "normalize_structured",
    "normalize_unstructured",
    "clean_name_candidate",
    "is_noise",
]

# (canonical field, header aliases in priority order)
FIELD_ALIASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("name", ("Name", "Full Name", "Student Name", "Student", "Cadet Name", "Cadet", "Staff Name")),
    ("first_name", ("First Name", "first_name", "FName", "Given Name", "Firstname")),
    ("last_name", ("Last Name", "last_name", "Surname", "LName", "Family Name", "Lastname")),
    ("middle_name", ("Middle Name", "middle_name", "MName", "Middle Initial", "MI")),
    ("suffix_name", ("Suffix", "suffix_name", "Suffix Name", "Ext", "Name Extension")),
    ("student_id", (
        "Student ID", "student_id", "StudentId", "Student Number", "Student No", "ID Number",
        "ID No", "ID", "Staff ID", "Staff No", "Staff Number", "Employee ID", "Employee No",
    )),
    ("username", ("Username", "User Name", "Login")),
    ("email", ("Email", "E-mail", "Email Address", "EMAIL")),
    ("status", ("Status", "Attendance", "Attendance Status")),
    ("remarks", ("Remarks", "Remark", "Notes", "Note", "Comment", "Comments")),
)

# Roster columns carried through to the identity record as-is
ATTRIBUTE_ALIASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("rank", ("Rank",)),
    ("contact_number", ("Contact Number", "contact_number", "Contact No", "Mobile", "Mobile Number", "Phone")),
    ("address", ("Address", "Home Address")),
    ("course", ("Course", "Program", "Degree Program")),
    ("year_level", ("Year Level", "year_level", "Year")),
    ("school_year", ("School Year", "school_year", "SY", "Academic Year")),
    ("battalion", ("Battalion", "Bn")),
    ("company", ("Company", "Coy")),
    ("platoon", ("Platoon", "Plt")),
    ("cadet_course", ("Cadet Course", "cadet_course", "ROTC Course")),
    ("semester", ("Semester", "Sem", "Term")),
    ("role", ("Role", "Position", "Designation")),
)

# Administrative / header vocabulary that is never a person's name
NOISE_WORDS: frozenset[str] = frozenset({
    "attendance", "sheet", "signature", "battalion", "company", "platoon", "name", "names",
    "student", "cadet", "rank", "date", "status", "remarks", "present", "absent", "late",
    "excused", "total", "page", "department", "office", "commandant", "instructor",
    "officer", "course", "section", "list", "roster", "republic", "university", "college",
    "school", "reserve", "training", "corps", "semester", "prepared", "noted", "approved",
    "certified", "year", "no", "number", "id", "of", "the", "and", "by", "for",
    # term / school-year vocabulary of roster headers
    "first", "second", "third", "summer", "term", "sy", "ay", "academic", "schedule",
})

# Phrases that only occur in document headers / footers
HEADER_FOOTER_PHRASES: tuple[str, ...] = (
    "page of",
    "generated by",
    "printed on",
    "prepared by",
    "noted by",
    "approved by",
    "certified correct",
    "republic of the",
    "official list",
)

# Detection priority order
STATUS_KEYWORDS: tuple[AttendanceStatus, ...] = (
    AttendanceStatus.PRESENT,
    AttendanceStatus.ABSENT,
    AttendanceStatus.LATE,
    AttendanceStatus.EXCUSED,
)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_STUDENT_ID_RE = re.compile(r"(?<!\d)(\d{4}-\d{4,6}|\d{6,10})(?!\d)")
_DIGITS_RE = re.compile(r"\d+")
_PUNCT_RE = re.compile(r"[^\w\s,.\-]|_")
_LONE_PUNCT_RE = re.compile(r"(?<!\S)[,.\-]+(?!\S)")
_SPACE_BEFORE_COMMA_RE = re.compile(r"\s+,")
_WS_RE = re.compile(r"\s+")
_EDGE_PUNCT_RE = re.compile(r"^[\s,.\-]+|[\s,.\-]+$")
_WORD_RE = re.compile(r"[^\W\d_]+")
_FLOAT_ID_RE = re.compile(r"^(\d+)\.0+$")


def normalize_header(header: str) -> str:
    return _NON_ALNUM_RE.sub("", str(header).strip().lower())


def _lookup(
    headers: Mapping[str, str],
    values: Mapping[str, str | None],
    aliases: tuple[str, ...],
) -> str | None:
    for alias in aliases:
        key = headers.get(normalize_header(alias))
        if key is None:
            continue
        value = values.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _clean_identifier(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    # spreadsheets sometimes hand back integral numbers as "2021001.0"
    m = _FLOAT_ID_RE.match(value)
    return m.group(1) if m else (value or None)


def normalize_structured(
    row: RawRow,
    aliases: tuple[tuple[str, tuple[str, ...]], ...] = FIELD_ALIASES,
    attribute_aliases: tuple[tuple[str, tuple[str, ...]], ...] = ATTRIBUTE_ALIASES,
) -> NormalizedRecord:
    values = row.values or {}
    headers: dict[str, str] = {}
    for key in values:
        # first header wins when two columns normalize to the same text
        headers.setdefault(normalize_header(key), key)

    found = {field: _lookup(headers, values, names) for field, names in aliases}
    attributes = {
        field: value
        for field, names in attribute_aliases
        if (value := _lookup(headers, values, names)) is not None
    }

    raw_status = found.get("status")
    if raw_status is None:
        status = AttendanceStatus.PRESENT
    else:
        status = AttendanceStatus.parse(raw_status) or AttendanceStatus.UNKNOWN

    return NormalizedRecord(
        row_number=row.row_number,
        structured=True,
        name=found.get("name"),
        first_name=found.get("first_name"),
        last_name=found.get("last_name"),
        middle_name=found.get("middle_name"),
        suffix_name=found.get("suffix_name"),
        student_id=_clean_identifier(found.get("student_id")),
        username=found.get("username"),
        email=found.get("email"),
        status=status,
        remarks=found.get("remarks"),
        attributes=attributes,
    )


def detect_status(line: str, keywords: tuple[AttendanceStatus, ...] = STATUS_KEYWORDS) -> AttendanceStatus:
    lowered = line.lower()
    for status in keywords:
        if re.search(rf"\b{status.value}\b", lowered):
            return status
    return AttendanceStatus.UNKNOWN


def clean_name_candidate(line: str, status: AttendanceStatus) -> str:
    """Strip everything that cannot be part of a name from a free-text line."""
    text = _EMAIL_RE.sub(" ", line)
    if status is not AttendanceStatus.UNKNOWN:
        text = re.sub(rf"\b{status.value}\b", " ", text, flags=re.IGNORECASE)
    text = _DIGITS_RE.sub(" ", text)
    text = _PUNCT_RE.sub(" ", text)
    text = _LONE_PUNCT_RE.sub(" ", text)
    text = _SPACE_BEFORE_COMMA_RE.sub(",", text)
    text = _WS_RE.sub(" ", text)
    return _EDGE_PUNCT_RE.sub("", text)


def is_noise(
    candidate: str,
    noise_words: frozenset[str] = NOISE_WORDS,
    phrases: tuple[str, ...] = HEADER_FOOTER_PHRASES,
) -> bool:
    lowered = _WS_RE.sub(" ", candidate.lower()).strip()
    if any(phrase in lowered for phrase in phrases):
        return True
    bare = " ".join(_WORD_RE.findall(lowered))
    if not bare:
        return True
    for word in noise_words:
        if bare in (word, f"{word}s", f"{word}es"):
            return True
    words = bare.split()
    # single letters are split abbreviations ("S.Y." -> s, y)
    return all(
        len(w) == 1 or w in noise_words or w.rstrip("s") in noise_words for w in words
    )


def normalize_unstructured(
    row: RawRow,
    min_name_length: int = 3,
    noise_words: frozenset[str] = NOISE_WORDS,
    phrases: tuple[str, ...] = HEADER_FOOTER_PHRASES,
) -> NormalizedRecord:
    line = row.raw or ""
    status = detect_status(line)

    email_match = _EMAIL_RE.search(line)
    email = email_match.group(0) if email_match else None
    id_match = _STUDENT_ID_RE.search(_EMAIL_RE.sub(" ", line))
    student_id = id_match.group(1) if id_match else None

    candidate = clean_name_candidate(line, status)
    if candidate and is_noise(candidate, noise_words, phrases):
        # header / footer / label line: its digits are years, dates or page numbers
        return NormalizedRecord(row_number=row.row_number, structured=False, status=status)

    name = candidate if len(candidate) > min_name_length else None

    return NormalizedRecord(
        row_number=row.row_number,
        structured=False,
        name=name,
        student_id=student_id,
        email=email,
        status=status,
    )


def normalize_row(row: RawRow, matching: MatchingConfig | None = None) -> NormalizedRecord:
    if row.structured:
        return normalize_structured(row)
    cfg = matching or MatchingConfig()
    return normalize_unstructured(row, min_name_length=cfg.min_name_length)
