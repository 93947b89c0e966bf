"""
Extract readers: encoding detection and delimited row streaming.
"""

from .delimited_reader import DEFAULT_DELIMITER, DelimitedReader
from .encoding import DecodedStream, EncodingNormalizer
from .file_reader import ExtractFile

__all__ = [
    "DEFAULT_DELIMITER",
    "DecodedStream",
    "DelimitedReader",
    "EncodingNormalizer",
    "ExtractFile",
]
