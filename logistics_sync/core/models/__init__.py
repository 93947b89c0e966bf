"""
Core data models for the import engine.

Configuration and report models use Pydantic for runtime validation.
"""

from .extract_row import ExtractRow
from .import_metadata import ImportMetadata
from .logical_record import LogicalRecord
from .record_kind import FieldSpec, FieldType, RecordKind, SyncMode, normalize_key_component
from .run_report import MAX_SKIPPED_ROWS, RunReport, SkippedRow

__all__ = [
    "ExtractRow",
    "FieldSpec",
    "FieldType",
    "ImportMetadata",
    "LogicalRecord",
    "MAX_SKIPPED_ROWS",
    "RecordKind",
    "RunReport",
    "SkippedRow",
    "SyncMode",
    "normalize_key_component",
]
