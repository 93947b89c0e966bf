"""
RunReport model: counters and outcome of one import run.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .import_metadata import ImportMetadata
from .record_kind import SyncMode

MAX_SKIPPED_ROWS = 50


class SkippedRow(BaseModel):
    """A rejected extract row and the reason it was rejected."""

    line_number: int
    reason: str


class RunReport(BaseModel):
    """
    Outcome of one import run of one record kind.

    Attributes:
        kind: Record kind name
        mode: Full or windowed run
        started_at: Run start (local wall-clock time)
        finished_at: Run end
        duration_seconds: Wall-clock duration
        created: Records created
        updated: Records updated
        unchanged: Records whose compared fields were equal (no write)
        skipped: Rows rejected by normalization/validation
        deleted: Records removed (full sync only)
        errors: Write errors (counted per item)
        skipped_rows: First MAX_SKIPPED_ROWS rejected rows with reasons
        status: "running", "success" or "failed"
        error_message: Fatal error message when the run failed
    """

    kind: str
    mode: SyncMode = SyncMode.FULL
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None
    duration_seconds: float | None = None
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    deleted: int = 0
    errors: int = 0
    skipped_rows: list[SkippedRow] = Field(default_factory=list)
    status: Literal["running", "success", "failed"] = "running"
    error_message: str | None = None

    def record_skip(self, line_number: int, reason: str) -> None:
        """Count a rejected row, retaining the first MAX_SKIPPED_ROWS reasons."""
        self.skipped += 1
        if len(self.skipped_rows) < MAX_SKIPPED_ROWS:
            self.skipped_rows.append(SkippedRow(line_number=line_number, reason=reason))

    def finish(self, error: BaseException | None = None) -> "RunReport":
        """
        Close the report.

        Args:
            error: The fatal error that aborted the run, if any

        Returns:
            self
        """
        self.finished_at = datetime.now()
        self.duration_seconds = round((self.finished_at - self.started_at).total_seconds(), 3)
        if error is None:
            self.status = "success"
        else:
            self.status = "failed"
            self.error_message = f"{type(error).__name__}: {error}"
        return self

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.unchanged

    def to_metadata(self) -> ImportMetadata:
        """Snapshot for the kind's import metadata row."""
        return ImportMetadata(
            import_type=self.kind,
            last_import_at=self.finished_at or datetime.now(),
            records_imported=self.created,
            records_updated=self.updated,
            records_deleted=self.deleted,
            records_skipped=self.skipped,
            errors=self.errors,
            status="failed" if self.status == "failed" else "success",
            error_message=self.error_message,
        )

    def summary(self) -> dict:
        """Flat counters for logging."""
        return {
            "kind": self.kind,
            "mode": self.mode.value,
            "records_created": self.created,
            "records_updated": self.updated,
            "records_unchanged": self.unchanged,
            "records_skipped": self.skipped,
            "records_deleted": self.deleted,
            "errors": self.errors,
            "status": self.status,
            "duration_seconds": self.duration_seconds,
        }
