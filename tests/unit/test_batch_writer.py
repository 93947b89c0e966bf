"""
Unit tests for the batch writer.

Write failures are injected through a store that rejects chosen records.
"""

from datetime import datetime

import pytest

from logistics_sync.batch.writers import BatchWriter
from logistics_sync.core.exceptions import StoreUnavailableError, StoreWriteError
from logistics_sync.core.models import RunReport
from logistics_sync.warehouse.memory_store import InMemoryRecordStore

KNOWN_TIN = "1234567890"


class FailingRecordStore(InMemoryRecordStore):
    """In-memory store failing writes of chosen branches and ids."""

    def __init__(self, bad_branches=(), bad_update_ids=(), bad_delete_ids=(), **kwargs):
        super().__init__(**kwargs)
        self.bad_branches = set(bad_branches)
        self.bad_update_ids = set(bad_update_ids)
        self.bad_delete_ids = set(bad_delete_ids)
        self.create_calls = 0

    def create_many(self, kind, records):
        self.create_calls += 1
        if any(record["branch"] in self.bad_branches for record in records):
            raise StoreWriteError("value too long for type character varying(255)")
        return super().create_many(kind, records)

    def update_by_id(self, kind, record_id, values):
        if record_id in self.bad_update_ids:
            raise StoreWriteError(f"cannot update {record_id}")
        super().update_by_id(kind, record_id, values)

    def delete_many(self, kind, ids):
        if self.bad_delete_ids.intersection(ids):
            raise StoreWriteError("deadlock detected")
        return super().delete_many(kind, ids)


def shipment(branch: str, day: int = 1, quantity: int = 1) -> tuple[tuple[str, ...], dict]:
    values = {
        "branch": branch,
        "client_tin": KNOWN_TIN,
        "date": datetime(2024, 1, day),
        "quantity": quantity,
    }
    return (branch, KNOWN_TIN, f"2024-01-{day:02d}"), values


def make_writer(kind, store, **kwargs):
    report = RunReport(kind=kind.name)
    created = []
    writer = BatchWriter(
        kind,
        store,
        report,
        on_created=lambda key, record_id, values: created.append((key, record_id)),
        **kwargs,
    )
    return writer, report, created


@pytest.mark.unit
class TestCreates:
    """Tests for buffered creates"""

    def test_flushes_when_batch_is_full(self, shipments_kind):
        store = InMemoryRecordStore()
        writer, report, created = make_writer(shipments_kind, store, create_batch_size=2)

        writer.add_create(*shipment("A"))
        assert store.count(shipments_kind) == 0
        writer.add_create(*shipment("B"))

        assert store.count(shipments_kind) == 2
        assert writer.pending_creates == 0
        assert report.created == 2
        assert [key for key, _ in created] == [("A", KNOWN_TIN, "2024-01-01"), ("B", KNOWN_TIN, "2024-01-01")]

    def test_later_row_with_same_key_replaces_pending_create(self, shipments_kind):
        store = InMemoryRecordStore()
        writer, report, _ = make_writer(shipments_kind, store, create_batch_size=10)

        writer.add_create(*shipment("A", quantity=1))
        writer.add_create(*shipment("A", quantity=5))
        writer.flush()

        rows = store.rows(shipments_kind)
        assert len(rows) == 1
        assert rows[0]["quantity"] == 5
        assert report.created == 1

    def test_failed_batch_is_retried_one_by_one(self, shipments_kind):
        store = FailingRecordStore(bad_branches={"BAD"})
        writer, report, created = make_writer(shipments_kind, store, create_batch_size=10)

        for branch in ("A", "BAD", "C"):
            writer.add_create(*shipment(branch))
        writer.flush()

        assert sorted(row["branch"] for row in store.rows(shipments_kind)) == ["A", "C"]
        assert report.created == 2
        assert report.errors == 1
        # One bulk attempt, then one insert per record
        assert store.create_calls == 4
        assert len(created) == 2

    def test_conflict_becomes_update(self, shipments_kind):
        store = InMemoryRecordStore()
        key, existing = shipment("A", quantity=1)
        stored_id = store.create_many(shipments_kind, [existing])[0]["id"]

        writer, report, created = make_writer(shipments_kind, store)
        writer.add_create(key, dict(existing, quantity=9))
        writer.flush()

        assert store.count(shipments_kind) == 1
        assert store.rows(shipments_kind)[0]["quantity"] == 9
        assert report.created == 0
        assert report.updated == 1
        assert created == [(key, stored_id)]

    def test_store_unavailable_is_not_caught(self, shipments_kind):
        class DownStore(InMemoryRecordStore):
            def create_many(self, kind, records):
                raise StoreUnavailableError("connection refused")

        writer, _, _ = make_writer(shipments_kind, DownStore())
        writer.add_create(*shipment("A"))
        with pytest.raises(StoreUnavailableError):
            writer.flush()


@pytest.mark.unit
class TestUpdates:
    """Tests for buffered updates"""

    def test_updates_are_written_concurrently(self, shipments_kind):
        store = InMemoryRecordStore()
        ids = [row["id"] for row in store.create_many(
            shipments_kind, [shipment(branch)[1] for branch in "ABCDE"]
        )]
        writer, report, _ = make_writer(shipments_kind, store, update_batch_size=100, update_concurrency=3)

        for record_id in ids:
            writer.add_update(record_id, {"quantity": 50})
        assert writer.pending_updates == 5
        writer.flush()

        assert report.updated == 5
        assert {row["quantity"] for row in store.rows(shipments_kind)} == {50}

    def test_later_update_of_same_id_wins(self, shipments_kind):
        store = InMemoryRecordStore()
        record_id = store.create_many(shipments_kind, [shipment("A")[1]])[0]["id"]
        writer, report, _ = make_writer(shipments_kind, store)

        writer.add_update(record_id, {"quantity": 2})
        writer.add_update(record_id, {"quantity": 3})
        writer.flush()

        assert report.updated == 1
        assert store.rows(shipments_kind)[0]["quantity"] == 3

    def test_failed_update_is_counted(self, shipments_kind):
        store = FailingRecordStore(bad_update_ids={2})
        store.create_many(shipments_kind, [shipment(branch)[1] for branch in "ABC"])
        writer, report, _ = make_writer(shipments_kind, store, update_batch_size=2)

        for record_id in (1, 2, 3):
            writer.add_update(record_id, {"quantity": 7})
        writer.flush()

        assert report.updated == 2
        assert report.errors == 1
        assert [row["quantity"] for row in store.rows(shipments_kind)] == [7, 1, 7]


@pytest.mark.unit
class TestDeletes:
    """Tests for chunked deletes"""

    def test_deletes_in_chunks(self, shipments_kind):
        store = InMemoryRecordStore()
        store.create_many(shipments_kind, [shipment(branch)[1] for branch in "ABCDE"])
        writer, report, _ = make_writer(shipments_kind, store, create_batch_size=2)

        writer.delete([1, 2, 3, 4, 5])

        assert store.count(shipments_kind) == 0
        assert report.deleted == 5

    def test_failing_chunk_does_not_stop_later_chunks(self, shipments_kind):
        store = FailingRecordStore(bad_delete_ids={3})
        store.create_many(shipments_kind, [shipment(branch)[1] for branch in "ABCDE"])
        writer, report, _ = make_writer(shipments_kind, store, create_batch_size=2)

        writer.delete([1, 2, 3, 4, 5])

        assert [row["id"] for row in store.rows(shipments_kind)] == [3, 4]
        assert report.deleted == 3
        assert report.errors == 2
