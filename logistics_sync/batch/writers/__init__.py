"""
Store writers.
"""

from .batch_writer import (
    DEFAULT_CREATE_BATCH_SIZE,
    DEFAULT_UPDATE_BATCH_SIZE,
    DEFAULT_UPDATE_CONCURRENCY,
    BatchWriter,
)

__all__ = [
    "BatchWriter",
    "DEFAULT_CREATE_BATCH_SIZE",
    "DEFAULT_UPDATE_BATCH_SIZE",
    "DEFAULT_UPDATE_CONCURRENCY",
]
