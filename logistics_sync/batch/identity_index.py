"""
Identity index: Business Key -> stored record id for one run.

Built once before streaming from paged, id-ordered reads of the store and
discarded when the run ends. Each entry carries only the comparison snapshot
the kind needs, so memory stays proportional to the stored key set.
"""

import time
from collections.abc import Iterator
from datetime import datetime

from logistics_sync.core.models import RecordKind
from logistics_sync.observability.logger import get_logger
from logistics_sync.observability.metrics import record_index_size
from logistics_sync.warehouse.store import RecordStore

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 2000


class IndexEntry:
    """Stored record id plus the comparison snapshot."""

    __slots__ = ("id", "snapshot")

    def __init__(self, record_id: int, snapshot: tuple = ()):
        self.id = record_id
        self.snapshot = snapshot

    def __repr__(self) -> str:
        return f"IndexEntry(id={self.id}, snapshot={self.snapshot})"


class IdentityIndex:
    """
    In-memory map from Business Key to stored record.

    Stored rows sharing a Business Key (left behind by older imports) keep the
    lowest id in the index; the other ids are collected in duplicate_ids.
    """

    def __init__(
        self,
        kind: RecordKind,
        store: RecordStore,
        page_size: int = DEFAULT_PAGE_SIZE,
        since: datetime | None = None,
        page_pause: float = 0.0,
    ):
        """
        Initialize the index.

        Args:
            kind: Record kind
            store: Record store to read from
            page_size: Rows per page
            since: Only index records with a window field >= since (windowed runs)
            page_pause: Seconds to sleep between pages
        """
        self.kind = kind
        self.store = store
        self.page_size = page_size
        self.since = since
        self.page_pause = page_pause
        self._entries: dict[tuple[str, ...], IndexEntry] = {}
        self.duplicate_ids: list[int] = []
        self.pages_loaded = 0

    def load(self) -> "IdentityIndex":
        """
        Read every stored record of the kind in pages.

        Returns:
            self
        """
        after_id = 0
        while True:
            page = self.store.find_page(self.kind, after_id, self.page_size, self.since)
            self.pages_loaded += 1
            for row in page:
                key = self.kind.business_key(row)
                if key in self._entries:
                    self.duplicate_ids.append(row["id"])
                    continue
                self._entries[key] = IndexEntry(row["id"], self.kind.snapshot(row))

            if len(page) < self.page_size:
                break
            after_id = page[-1]["id"]
            # Yield between pages
            time.sleep(self.page_pause)

        if self.duplicate_ids:
            logger.warning(
                f"[{self.kind.name}] {len(self.duplicate_ids)} stored records share a Business Key "
                f"with another record",
                extra={"kind": self.kind.name},
            )
        record_index_size(self.kind.name, len(self._entries))
        logger.info(
            f"[{self.kind.name}] identity index loaded: {len(self._entries)} keys in {self.pages_loaded} pages",
            extra={"kind": self.kind.name, "index_size": len(self._entries)},
        )
        return self

    def get(self, key: tuple[str, ...]) -> IndexEntry | None:
        return self._entries.get(key)

    def register(self, key: tuple[str, ...], record_id: int, snapshot: tuple = ()) -> None:
        """Add or replace the entry of a key (used for records created during the run)."""
        self._entries[key] = IndexEntry(record_id, snapshot)

    def items(self) -> Iterator[tuple[tuple[str, ...], IndexEntry]]:
        return iter(self._entries.items())

    def clear(self) -> None:
        self._entries.clear()
        self.duplicate_ids.clear()
        record_index_size(self.kind.name, 0)

    def __contains__(self, key: tuple[str, ...]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
