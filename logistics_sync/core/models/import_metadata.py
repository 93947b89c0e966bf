"""
ImportMetadata model: the persisted snapshot of the last run of a kind.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ImportMetadata(BaseModel):
    """
    One row per record kind, overwritten by every run (not a history).

    Attributes:
        import_type: Record kind name (unique)
        last_import_at: When the last run finished
        records_imported: Records created by the last run
        records_updated: Records updated by the last run
        records_deleted: Records removed by the last run
        records_skipped: Rows rejected by the last run
        errors: Write errors of the last run
        status: "success" or "failed"
        error_message: Fatal error of the last run, if any
    """

    import_type: str = Field(..., min_length=1)
    last_import_at: datetime
    records_imported: int = Field(0, ge=0)
    records_updated: int = Field(0, ge=0)
    records_deleted: int = Field(0, ge=0)
    records_skipped: int = Field(0, ge=0)
    errors: int = Field(0, ge=0)
    status: str = "success"
    error_message: str | None = None
