"""
Unit tests for the identity index.
"""

from datetime import datetime

import pytest

from logistics_sync.batch.identity_index import IdentityIndex
from logistics_sync.warehouse.memory_store import InMemoryRecordStore

KNOWN_TIN = "1234567890"


def shipment(branch: str, day: int, quantity: int = 1, month: int = 1) -> dict:
    return {
        "branch": branch,
        "client_tin": KNOWN_TIN,
        "date": datetime(2024, month, day, 10, 30),
        "quantity": quantity,
    }


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(clients={KNOWN_TIN: "Test client"})


@pytest.mark.unit
class TestIdentityIndex:
    """Tests for IdentityIndex loading and lookups"""

    def test_loads_all_pages(self, store, shipments_kind):
        store.create_many(shipments_kind, [shipment("A", day) for day in range(1, 6)])

        index = IdentityIndex(shipments_kind, store, page_size=2).load()

        assert len(index) == 5
        # 2 + 2 + 1 rows
        assert index.pages_loaded == 3
        entry = index.get(("A", KNOWN_TIN, "2024-01-03"))
        assert entry is not None
        assert entry.id == 3

    def test_exact_page_multiple_reads_an_empty_last_page(self, store, shipments_kind):
        store.create_many(shipments_kind, [shipment("A", day) for day in range(1, 5)])

        index = IdentityIndex(shipments_kind, store, page_size=2).load()

        assert len(index) == 4
        assert index.pages_loaded == 3

    def test_empty_store(self, store, shipments_kind):
        index = IdentityIndex(shipments_kind, store).load()
        assert len(index) == 0
        assert index.pages_loaded == 1
        assert index.get(("A", KNOWN_TIN, "2024-01-01")) is None

    def test_duplicate_keys_keep_lowest_id(self, store, shipments_kind):
        store.create_many(shipments_kind, [shipment("A", 1), shipment("B", 1)])
        # A row left behind by an older import, same key in different spelling
        store.tables["shipments"][10] = dict(shipment(" A ", 1), date=datetime(2024, 1, 1, 23, 0))

        index = IdentityIndex(shipments_kind, store, page_size=10).load()

        assert len(index) == 2
        assert index.get(("A", KNOWN_TIN, "2024-01-01")).id == 1
        assert index.duplicate_ids == [10]

    def test_snapshot_only_for_compared_kinds(self, store, shipments_kind, compared_shipments_kind):
        store.create_many(shipments_kind, [shipment("A", 1, quantity=7)])
        key = ("A", KNOWN_TIN, "2024-01-01")

        assert IdentityIndex(shipments_kind, store).load().get(key).snapshot == ()
        assert IdentityIndex(compared_shipments_kind, store).load().get(key).snapshot == ("7",)

    def test_since_limits_index_to_window(self, store, shipments_kind):
        store.create_many(shipments_kind, [
            shipment("A", 5, month=1),
            shipment("A", 5, month=3),
            shipment("B", 20, month=3),
        ])

        index = IdentityIndex(shipments_kind, store, since=datetime(2024, 3, 1)).load()

        assert len(index) == 2
        assert ("A", KNOWN_TIN, "2024-01-05") not in index
        assert ("A", KNOWN_TIN, "2024-03-05") in index

    def test_register_and_clear(self, store, shipments_kind):
        index = IdentityIndex(shipments_kind, store).load()
        key = ("A", KNOWN_TIN, "2024-01-01")

        index.register(key, 42, ("3",))
        assert index.get(key).id == 42
        assert dict(index.items())[key].snapshot == ("3",)

        index.clear()
        assert len(index) == 0
        assert index.duplicate_ids == []
