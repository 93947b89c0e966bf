"""
Batch writer: buffers creates and updates and flushes them to the store.

Creates go out as one conflict-skipping bulk insert per batch; a batch that
fails on data is retried item by item. Updates fan out over a bounded thread
pool. Deletes run in chunks. Write failures are counted per item in the run
report; StoreUnavailableError is never caught here.
"""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from logistics_sync.core.exceptions import StoreWriteError
from logistics_sync.core.models import RecordKind, RunReport
from logistics_sync.observability.logger import get_logger
from logistics_sync.observability.metrics import record_write_errors, track_flush
from logistics_sync.warehouse.store import RecordStore

logger = get_logger(__name__)

DEFAULT_CREATE_BATCH_SIZE = 100
DEFAULT_UPDATE_BATCH_SIZE = 1000
DEFAULT_UPDATE_CONCURRENCY = 50

BusinessKey = tuple[str, ...]


class BatchWriter:
    """
    Buffered writer for one run of one record kind.
    """

    def __init__(
        self,
        kind: RecordKind,
        store: RecordStore,
        report: RunReport,
        create_batch_size: int = DEFAULT_CREATE_BATCH_SIZE,
        update_batch_size: int = DEFAULT_UPDATE_BATCH_SIZE,
        update_concurrency: int = DEFAULT_UPDATE_CONCURRENCY,
        on_created: Callable[[BusinessKey, int, dict[str, Any]], None] | None = None,
    ):
        """
        Initialize the batch writer.

        Args:
            kind: Record kind being written
            store: Target record store
            report: Run report receiving created/updated/deleted/errors counts
            create_batch_size: Pending creates that trigger a flush (also the delete chunk size)
            update_batch_size: Pending updates that trigger a flush
            update_concurrency: Maximum concurrent update operations
            on_created: Called with (key, id, values) for every record that now
                        exists in the store under a key the index did not know
        """
        self.kind = kind
        self.store = store
        self.report = report
        self.create_batch_size = create_batch_size
        self.update_batch_size = update_batch_size
        self.update_concurrency = update_concurrency
        self.on_created = on_created

        # Keyed buffers: a later row with the same key replaces the earlier one
        self._pending_creates: dict[BusinessKey, dict[str, Any]] = {}
        self._pending_updates: dict[int, dict[str, Any]] = {}

    @property
    def pending_creates(self) -> int:
        return len(self._pending_creates)

    @property
    def pending_updates(self) -> int:
        return len(self._pending_updates)

    def add_create(self, key: BusinessKey, values: dict[str, Any]) -> None:
        """Buffer a create, flushing when the create batch is full."""
        self._pending_creates[key] = values
        if len(self._pending_creates) >= self.create_batch_size:
            self.flush_creates()

    def add_update(self, record_id: int, values: dict[str, Any]) -> None:
        """Buffer an update, flushing when the update batch is full."""
        self._pending_updates[record_id] = values
        if len(self._pending_updates) >= self.update_batch_size:
            self.flush_updates()

    def _register(self, key: BusinessKey, record_id: int, values: dict[str, Any]) -> None:
        if self.on_created:
            self.on_created(key, record_id, values)

    def flush_creates(self) -> None:
        """Write all pending creates."""
        if not self._pending_creates:
            return
        batch = self._pending_creates
        self._pending_creates = {}

        with track_flush(self.kind.name, "create"):
            try:
                inserted = self.store.create_many(self.kind, list(batch.values()))
            except StoreWriteError as e:
                logger.warning(
                    f"[{self.kind.name}] bulk insert of {len(batch)} records failed, retrying one by one: {e}",
                    extra={"kind": self.kind.name},
                )
                inserted = self._create_one_by_one(batch)

        remaining = dict(batch)
        for row in inserted:
            key = self.kind.business_key(row)
            values = remaining.pop(key, None)
            self.report.created += 1
            self._register(key, row["id"], values if values is not None else row)

        if remaining:
            self._resolve_conflicts(remaining)

    def _create_one_by_one(self, batch: dict[BusinessKey, dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert records individually; each failing record counts one error."""
        inserted = []
        failed_keys = []
        for key, values in batch.items():
            try:
                inserted.extend(self.store.create_many(self.kind, [values]))
            except StoreWriteError as e:
                failed_keys.append(key)
                self.report.errors += 1
                logger.warning(
                    f"[{self.kind.name}] insert failed for key {key}: {e}",
                    extra={"kind": self.kind.name},
                )
        for key in failed_keys:
            del batch[key]
        record_write_errors(self.kind.name, "create", len(failed_keys))
        return inserted

    def _resolve_conflicts(self, conflicts: dict[BusinessKey, dict[str, Any]]) -> None:
        """
        Turn creates skipped by a uniqueness conflict into updates.

        A conflict means the key exists in the store but was not in the index
        (for example, a record outside the window of a windowed run).
        """
        existing = self.store.find_by_keys(self.kind, list(conflicts))
        for row in existing:
            key = self.kind.business_key(row)
            values = conflicts.pop(key, None)
            if values is None:
                continue
            self._register(key, row["id"], values)
            self.add_update(row["id"], values)

        if conflicts:
            # Skipped by a constraint other than the Business Key
            self.report.errors += len(conflicts)
            record_write_errors(self.kind.name, "create", len(conflicts))
            logger.warning(
                f"[{self.kind.name}] {len(conflicts)} records were neither inserted nor found",
                extra={"kind": self.kind.name},
            )

    def _update_one(self, item: tuple[int, dict[str, Any]]) -> bool:
        record_id, values = item
        try:
            self.store.update_by_id(self.kind, record_id, values)
            return True
        except StoreWriteError as e:
            logger.warning(
                f"[{self.kind.name}] update failed for id {record_id}: {e}",
                extra={"kind": self.kind.name},
            )
            return False

    def flush_updates(self) -> None:
        """Write all pending updates with bounded concurrency."""
        if not self._pending_updates:
            return
        batch = list(self._pending_updates.items())
        self._pending_updates = {}

        workers = max(1, min(self.update_concurrency, len(batch)))
        with track_flush(self.kind.name, "update"):
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"update-{self.kind.name}") as executor:
                results = list(executor.map(self._update_one, batch))

        succeeded = sum(results)
        failed = len(results) - succeeded
        self.report.updated += succeeded
        self.report.errors += failed
        record_write_errors(self.kind.name, "update", failed)

    def flush(self) -> None:
        """Write everything still buffered (creates first, they may produce updates)."""
        self.flush_creates()
        self.flush_updates()

    def delete(self, ids: list[int]) -> None:
        """
        Delete records by id in chunks.

        A failing chunk counts one error per id and does not stop later chunks.
        """
        chunk_size = self.create_batch_size
        for start in range(0, len(ids), chunk_size):
            chunk = ids[start:start + chunk_size]
            with track_flush(self.kind.name, "delete"):
                try:
                    self.report.deleted += self.store.delete_many(self.kind, chunk)
                except StoreWriteError as e:
                    self.report.errors += len(chunk)
                    record_write_errors(self.kind.name, "delete", len(chunk))
                    logger.warning(
                        f"[{self.kind.name}] delete of {len(chunk)} records failed: {e}",
                        extra={"kind": self.kind.name},
                    )
