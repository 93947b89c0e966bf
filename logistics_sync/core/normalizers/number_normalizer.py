"""
IntegerNormalizer and DecimalNormalizer.

Unparseable numbers become zero instead of rejecting the row. An optional
'min' parameter rejects rows whose value is below the bound.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from .base_normalizer import BaseNormalizer, FieldError

_WHITESPACE = re.compile(r"\s+")
_LEADING_INTEGER = re.compile(r"^[+-]?\d+")


class _BoundedNormalizer(BaseNormalizer):
    """Shared range check for numeric normalizers."""

    def check_range(self, value: Any) -> Any:
        min_value = self.parameters.get("min")
        if min_value is not None and value < min_value:
            raise FieldError(self.field_name, f"value {value} is below minimum {min_value}")
        max_value = self.parameters.get("max")
        if max_value is not None and value > max_value:
            raise FieldError(self.field_name, f"value {value} is above maximum {max_value}")
        return value


class IntegerNormalizer(_BoundedNormalizer):
    """
    Integer counts.

    ',' thousands separators and whitespace are stripped, then the leading
    integer is taken ("12.0" -> 12). No digits at all -> 0.
    """

    def convert(self, value: str) -> int:
        compact = _WHITESPACE.sub("", value.replace(",", ""))
        match = _LEADING_INTEGER.match(compact)
        number = int(match.group(0)) if match else 0
        return self.check_range(number)

    @property
    def field_type(self) -> str:
        return "integer"


def parse_decimal(value: str) -> Decimal:
    """
    Parse a decimal with ',' or '.' as the decimal separator.

    When both appear, the last one is the decimal separator and the other
    is a thousands separator. Unparseable -> Decimal(0).
    """
    compact = _WHITESPACE.sub("", value)
    if "," in compact and "." in compact:
        if compact.rfind(",") > compact.rfind("."):
            compact = compact.replace(".", "").replace(",", ".")
        else:
            compact = compact.replace(",", "")
    else:
        compact = compact.replace(",", ".")
    try:
        number = Decimal(compact)
    except InvalidOperation:
        return Decimal(0)
    if not number.is_finite():
        return Decimal(0)
    return number


class DecimalNormalizer(_BoundedNormalizer):
    """Monetary and fractional amounts."""

    def convert(self, value: str) -> Decimal:
        return self.check_range(parse_decimal(value))

    @property
    def field_type(self) -> str:
        return "decimal"
