"""
Row-level normalization and validation rules.
"""

from .row_normalizer import OUTSIDE_WINDOW, RowNormalizer

__all__ = [
    "OUTSIDE_WINDOW",
    "RowNormalizer",
]
