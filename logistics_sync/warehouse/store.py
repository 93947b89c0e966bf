"""
Record store contract used by the import engine.

The engine only talks to the store through this interface: paged identity
reads, bulk creates, updates by id, deletes by id set, the owning-party
reference set and the per-kind import metadata row.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from logistics_sync.core.models import ImportMetadata, RecordKind


class RecordStore(ABC):
    """
    Abstract persistent store of records of every kind.

    Errors:
        StoreUnavailableError: The store cannot be reached (fatal for a run)
        StoreWriteError: A write failed on data (counted, never fatal)
    """

    @abstractmethod
    def find_page(
        self,
        kind: RecordKind,
        after_id: int,
        limit: int,
        since: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """
        Read one page of stored records ordered by id (keyset pagination).

        Args:
            kind: Record kind
            after_id: Return records with id greater than this
            limit: Page size
            since: When set, only records with any window field >= since

        Returns:
            Rows with 'id', the key fields and the comparison fields
        """
        pass

    @abstractmethod
    def find_by_keys(self, kind: RecordKind, keys: list[tuple[str, ...]]) -> list[dict[str, Any]]:
        """
        Look up stored records by Business Key.

        Returns:
            Rows with 'id' and the key fields, for the keys that exist
        """
        pass

    @abstractmethod
    def create_many(self, kind: RecordKind, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Insert records in one statement, skipping uniqueness conflicts.

        Args:
            kind: Record kind
            records: Field values per record

        Returns:
            Rows with 'id' and the key fields of the records actually inserted

        Raises:
            StoreWriteError: If the batch fails on data
        """
        pass

    @abstractmethod
    def update_by_id(self, kind: RecordKind, record_id: int, values: dict[str, Any]) -> None:
        """
        Overwrite the fields of one stored record.

        Raises:
            StoreWriteError: If the update fails on data
        """
        pass

    @abstractmethod
    def delete_many(self, kind: RecordKind, ids: list[int]) -> int:
        """
        Delete stored records by id.

        Returns:
            Number of records deleted

        Raises:
            StoreWriteError: If the delete fails
        """
        pass

    @abstractmethod
    def count(self, kind: RecordKind) -> int:
        """Number of stored records of a kind."""
        pass

    @abstractmethod
    def load_reference_identifiers(self) -> set[str]:
        """Identifiers of every known owning party (client taxpayer numbers)."""
        pass

    @abstractmethod
    def create_clients(self, clients: list[tuple[str, str]]) -> int:
        """
        Insert owning parties, skipping identifiers that already exist.

        Args:
            clients: (identifier, company name) pairs

        Returns:
            Number of parties inserted
        """
        pass

    @abstractmethod
    def save_import_metadata(self, metadata: ImportMetadata) -> None:
        """Upsert the import metadata row of a kind."""
        pass

    @abstractmethod
    def get_import_metadata(self, import_type: str | None = None) -> list[ImportMetadata]:
        """
        Read import metadata rows.

        Args:
            import_type: Kind name, or None for every kind
        """
        pass
