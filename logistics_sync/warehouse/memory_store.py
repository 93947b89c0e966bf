"""
In-memory record store.

Implements the full RecordStore contract, including Business Key uniqueness
and conflict-skipping bulk inserts. Used for engine tests and for local runs
without a database.
"""

import threading
from datetime import datetime
from typing import Any

from logistics_sync.core.models import ImportMetadata, RecordKind
from logistics_sync.warehouse.store import RecordStore


class InMemoryRecordStore(RecordStore):
    """
    Record store holding every table in process memory.

    Attributes:
        tables: Table name -> {id: row}
        clients: Identifier -> company name
        metadata: Kind name -> ImportMetadata
    """

    def __init__(self, clients: dict[str, str] | None = None):
        self.tables: dict[str, dict[int, dict[str, Any]]] = {}
        self.clients: dict[str, str] = dict(clients or {})
        self.metadata: dict[str, ImportMetadata] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def _table(self, kind: RecordKind) -> dict[int, dict[str, Any]]:
        return self.tables.setdefault(kind.table, {})

    def rows(self, kind: RecordKind) -> list[dict[str, Any]]:
        """Every stored row of a kind, ordered by id."""
        table = self._table(kind)
        return [dict(table[i], id=i) for i in sorted(table)]

    def find_page(
        self,
        kind: RecordKind,
        after_id: int,
        limit: int,
        since: datetime | None = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            table = self._table(kind)
            page = []
            for record_id in sorted(i for i in table if i > after_id):
                row = table[record_id]
                if since is not None and kind.window_fields:
                    if not any(row.get(f) is not None and row[f] >= since for f in kind.window_fields):
                        continue
                page.append(dict(row, id=record_id))
                if len(page) >= limit:
                    break
            return page

    def find_by_keys(self, kind: RecordKind, keys: list[tuple[str, ...]]) -> list[dict[str, Any]]:
        wanted = set(keys)
        with self._lock:
            return [
                dict(row, id=record_id)
                for record_id, row in self._table(kind).items()
                if kind.business_key(row) in wanted
            ]

    def create_many(self, kind: RecordKind, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        created = []
        with self._lock:
            table = self._table(kind)
            existing = {kind.business_key(row) for row in table.values()}
            for record in records:
                key = kind.business_key(record)
                if key in existing:
                    continue
                existing.add(key)
                record_id = self._next_id
                self._next_id += 1
                table[record_id] = {name: record.get(name) for name in kind.field_names}
                created.append(dict(table[record_id], id=record_id))
        return created

    def update_by_id(self, kind: RecordKind, record_id: int, values: dict[str, Any]) -> None:
        with self._lock:
            row = self._table(kind).get(record_id)
            if row is not None:
                row.update({name: values[name] for name in kind.field_names if name in values})

    def delete_many(self, kind: RecordKind, ids: list[int]) -> int:
        deleted = 0
        with self._lock:
            table = self._table(kind)
            for record_id in ids:
                if table.pop(record_id, None) is not None:
                    deleted += 1
        return deleted

    def count(self, kind: RecordKind) -> int:
        return len(self._table(kind))

    def load_reference_identifiers(self) -> set[str]:
        return set(self.clients)

    def create_clients(self, clients: list[tuple[str, str]]) -> int:
        created = 0
        with self._lock:
            for tin, name in clients:
                if tin not in self.clients:
                    self.clients[tin] = name
                    created += 1
        return created

    def save_import_metadata(self, metadata: ImportMetadata) -> None:
        self.metadata[metadata.import_type] = metadata

    def get_import_metadata(self, import_type: str | None = None) -> list[ImportMetadata]:
        if import_type is not None:
            found = self.metadata.get(import_type)
            return [found] if found else []
        return [self.metadata[k] for k in sorted(self.metadata)]
