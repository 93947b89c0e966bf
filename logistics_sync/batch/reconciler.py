"""
Reconciliation engine: decides create / update / unchanged / remove.

Every accepted record is routed against the identity index. Keys seen in the
extract are collected; after the stream, a full-sync run removes every indexed
record whose key was not seen. Windowed runs never remove anything.
"""

from typing import Any

from logistics_sync.core.models import LogicalRecord, RecordKind, RunReport, SyncMode
from logistics_sync.observability.logger import get_logger

from .identity_index import IdentityIndex
from .writers import BatchWriter

logger = get_logger(__name__)


class ReconciliationEngine:
    """
    Brings the store into correspondence with one extract of one kind.
    """

    def __init__(
        self,
        kind: RecordKind,
        index: IdentityIndex,
        writer: BatchWriter,
        report: RunReport,
        mode: SyncMode = SyncMode.FULL,
    ):
        """
        Initialize the engine.

        Args:
            kind: Record kind
            index: Loaded identity index
            writer: Batch writer for this run; its on_created callback should
                    be register_created so later duplicates become updates
            report: Run report
            mode: Full sync removes unseen records, windowed does not
        """
        self.kind = kind
        self.index = index
        self.writer = writer
        self.report = report
        self.mode = mode
        self.observed: set[tuple[str, ...]] = set()

    def register_created(self, key: tuple[str, ...], record_id: int, values: dict[str, Any]) -> None:
        """Index a record that the writer just created (or found on conflict)."""
        self.index.register(key, record_id, self.kind.snapshot(values))

    def apply(self, record: LogicalRecord) -> None:
        """
        Route one accepted record.

        Args:
            record: Validated record with its Business Key
        """
        key = record.key
        self.observed.add(key)
        entry = self.index.get(key)

        if entry is None:
            self.writer.add_create(key, record.values)
            return

        if self.kind.compare_fields:
            snapshot = self.kind.snapshot(record.values)
            if snapshot == entry.snapshot:
                self.report.unchanged += 1
                return
            # A later duplicate row compares against the values now queued
            entry.snapshot = snapshot

        self.writer.add_update(entry.id, record.values)

    def removal_ids(self) -> list[int]:
        """Ids of indexed records whose key was not seen in the extract."""
        ids = [entry.id for key, entry in self.index.items() if key not in self.observed]
        ids.extend(self.index.duplicate_ids)
        return ids

    def finish(self) -> RunReport:
        """
        Flush pending writes and, in full-sync mode, remove unseen records.

        Returns:
            The run report
        """
        self.writer.flush()

        if self.mode == SyncMode.FULL and self.kind.delete_missing:
            ids = self.removal_ids()
            if ids:
                logger.info(
                    f"[{self.kind.name}] removing {len(ids)} records absent from the extract",
                    extra={"kind": self.kind.name},
                )
                self.writer.delete(ids)
        elif self.mode == SyncMode.WINDOWED:
            logger.info(
                f"[{self.kind.name}] windowed run: removal skipped",
                extra={"kind": self.kind.name},
            )

        self.observed.clear()
        return self.report
