"""
TextNormalizer and IdentifierNormalizer.
"""

import re
from decimal import Decimal, InvalidOperation

from .base_normalizer import BaseNormalizer, FieldError

_NON_DIGITS = re.compile(r"\D")
_SCIENTIFIC = re.compile(r"^[+-]?\d+(?:[.,]\d+)?[eE][+-]?\d+$")


class TextNormalizer(BaseNormalizer):
    """Free text: trimmed, trailing ';' removed, empty means missing."""

    def convert(self, value: str) -> str:
        return value

    @property
    def field_type(self) -> str:
        return "text"


def expand_scientific(value: str) -> str:
    """
    Expand a spreadsheet-mangled number such as "7.7E+09" to its digits.

    Values not in scientific notation are returned unchanged.
    """
    if not _SCIENTIFIC.match(value):
        return value
    try:
        return format(Decimal(value.replace(",", ".")).to_integral_value(), "f")
    except InvalidOperation:
        return value


class IdentifierNormalizer(BaseNormalizer):
    """
    Digit-only identifiers (taxpayer numbers).

    Every non-digit is stripped. A non-empty cell with no digits rejects the row.
    """

    def convert(self, value: str) -> str:
        digits = _NON_DIGITS.sub("", expand_scientific(value))
        if not digits:
            raise FieldError(self.field_name, "invalid identifier format")
        return digits

    @property
    def field_type(self) -> str:
        return "identifier"
