"""
Field normalizers: raw extract cell -> typed value.

Provides one normalizer per logical field type plus the FieldError raised
when a value rejects its row.
"""

from .base_normalizer import BaseNormalizer, FieldError, clean_value
from .boolean_normalizer import BooleanNormalizer
from .date_normalizer import NULL_DATE_TOKENS, DateNormalizer, parse_date
from .number_normalizer import DecimalNormalizer, IntegerNormalizer, parse_decimal
from .text_normalizer import IdentifierNormalizer, TextNormalizer, expand_scientific

__all__ = [
    "BaseNormalizer",
    "FieldError",
    "clean_value",
    "TextNormalizer",
    "IdentifierNormalizer",
    "DateNormalizer",
    "IntegerNormalizer",
    "DecimalNormalizer",
    "BooleanNormalizer",
    "NULL_DATE_TOKENS",
    "parse_date",
    "parse_decimal",
    "expand_scientific",
]
