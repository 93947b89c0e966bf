"""
DateNormalizer - parses the date formats found in production extracts.

Formats are tried in order:
1. ISO: YYYY-MM-DD[ HH:mm[:ss]]
2. Local: DD.MM.YYYY[ HH:mm]
3. Generic fallback (python-dateutil): year-first when the value starts with
   a 4-digit year, day-first otherwise

Results are naive datetimes holding local wall-clock time. Any timezone the
generic parser finds is dropped without conversion.
"""

import re
from datetime import datetime

from dateutil import parser as dateutil_parser

from .base_normalizer import BaseNormalizer, FieldError

NULL_DATE_TOKENS = frozenset({"null", "NULL", "-"})

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[ T]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$")
_LOCAL_DATE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$")
_HAS_DIGIT = re.compile(r"\d")
_YEAR_FIRST = re.compile(r"^\d{4}\D")


def _build(year: str, month: str, day: str, hour, minute, second) -> datetime | None:
    try:
        return datetime(
            int(year), int(month), int(day),
            int(hour or 0), int(minute or 0), int(second or 0),
        )
    except ValueError:
        return None


def _parse_year_first(value: str) -> datetime:
    """ISO 8601 first (fractions, Z, offsets), then dateutil reading year, month, day."""
    try:
        return dateutil_parser.isoparse(value)
    except ValueError:
        return dateutil_parser.parse(value, yearfirst=True, dayfirst=False)


def parse_date(value: str) -> datetime | None:
    """
    Parse a cleaned date cell.

    Args:
        value: Non-empty cell text

    Returns:
        Naive datetime, or None if no format matches
    """
    match = _ISO_DATE.match(value)
    if match:
        return _build(*match.groups())

    match = _LOCAL_DATE.match(value)
    if match:
        day, month, year, hour, minute, second = match.groups()
        return _build(year, month, day, hour, minute, second)

    # Bare numbers are not dates; dateutil would read "5" as a day of this month
    if len(value) < 6 or not _HAS_DIGIT.search(value) or value.isdigit():
        return None

    try:
        if _YEAR_FIRST.match(value):
            parsed = _parse_year_first(value)
        else:
            parsed = dateutil_parser.parse(value, dayfirst=True)
    except (ValueError, OverflowError):
        return None
    return parsed.replace(tzinfo=None)


class DateNormalizer(BaseNormalizer):
    """
    Date/timestamp fields.

    Null tokens ("null", "NULL", "-") mean missing. An unparseable value raises
    FieldError; the row normalizer decides whether that rejects the row or
    falls back to a default.
    """

    def convert(self, value: str) -> datetime | None:
        if value in NULL_DATE_TOKENS:
            return None
        parsed = parse_date(value)
        if parsed is None:
            raise FieldError(self.field_name, f"bad date '{value}'")
        return parsed

    @property
    def field_type(self) -> str:
        return "date"
