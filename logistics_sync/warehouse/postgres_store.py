"""
PostgreSQL implementation of the record store.

Statements are composed with psycopg.sql from the kind's table and field
names, which are checked with sanitize_sql_identifier first. Business Keys are
matched on text renderings of the key columns; date key columns contribute
their calendar date only, matching RecordKind.business_key.
"""

from datetime import datetime
from typing import Any

import psycopg
from psycopg import sql

from logistics_sync.core.exceptions import ConfigurationError, StoreUnavailableError, StoreWriteError
from logistics_sync.core.models import FieldType, ImportMetadata, RecordKind
from logistics_sync.observability.logger import get_logger
from logistics_sync.utils.validation import ValidationError, sanitize_sql_identifier
from logistics_sync.warehouse.connection import DatabaseConnectionPool
from logistics_sync.warehouse.import_metadata import query_import_metadata, upsert_import_metadata
from logistics_sync.warehouse.store import RecordStore

logger = get_logger(__name__)

CLIENT_CHUNK_SIZE = 1000


class PostgresRecordStore(RecordStore):
    """
    Record store backed by one PostgreSQL table per record kind.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize the store.

        Args:
            pool: Open database connection pool
        """
        self.pool = pool
        self._checked_kinds: set[str] = set()

    def _check_kind(self, kind: RecordKind) -> None:
        if kind.name in self._checked_kinds:
            return
        try:
            sanitize_sql_identifier(kind.table, "table")
            for name in kind.field_names:
                sanitize_sql_identifier(name, "column")
        except ValidationError as e:
            raise ConfigurationError(f"Kind '{kind.name}' cannot be stored: {e}") from e
        self._checked_kinds.add(kind.name)

    def _write(self, statement, params, returning: bool = False):
        """Run a write, turning data errors into StoreWriteError."""
        try:
            if returning:
                return self.pool.execute_query(statement, params)
            return self.pool.execute_command(statement, params)
        except StoreUnavailableError:
            raise
        except psycopg.Error as e:
            raise StoreWriteError(f"{type(e).__name__}: {e}") from e

    @staticmethod
    def _key_expression(kind: RecordKind, name: str) -> sql.Composable:
        column = sql.Identifier(name)
        if kind.field(name).field_type == FieldType.DATE:
            return sql.SQL("({})::date::text").format(column)
        return sql.SQL("({})::text").format(column)

    def _key_columns(self, kind: RecordKind) -> sql.Composable:
        return sql.SQL(", ").join(sql.Identifier(name) for name in kind.key_fields)

    def find_page(
        self,
        kind: RecordKind,
        after_id: int,
        limit: int,
        since: datetime | None = None,
    ) -> list[dict[str, Any]]:
        self._check_kind(kind)
        columns = list(dict.fromkeys(kind.key_fields + kind.compare_fields))
        conditions = [sql.SQL("id > %(after_id)s")]
        params: dict[str, Any] = {"after_id": after_id, "limit": limit}

        if since is not None and kind.window_fields:
            conditions.append(
                sql.SQL("({})").format(
                    sql.SQL(" OR ").join(
                        sql.SQL("{} >= %(since)s").format(sql.Identifier(name))
                        for name in kind.window_fields
                    )
                )
            )
            params["since"] = since

        query = sql.SQL("SELECT id, {columns} FROM {table} WHERE {where} ORDER BY id LIMIT %(limit)s").format(
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            table=sql.Identifier(kind.table),
            where=sql.SQL(" AND ").join(conditions),
        )
        return self.pool.execute_query(query, params)

    def find_by_keys(self, kind: RecordKind, keys: list[tuple[str, ...]]) -> list[dict[str, Any]]:
        self._check_kind(kind)
        if not keys:
            return []

        width = len(kind.key_fields)
        row_placeholder = sql.SQL("({})").format(sql.SQL(", ").join([sql.Placeholder()] * width))
        query = sql.SQL("SELECT id, {columns} FROM {table} WHERE ({exprs}) IN ({values})").format(
            columns=self._key_columns(kind),
            table=sql.Identifier(kind.table),
            exprs=sql.SQL(", ").join(self._key_expression(kind, name) for name in kind.key_fields),
            values=sql.SQL(", ").join([row_placeholder] * len(keys)),
        )
        params = tuple(component for key in keys for component in key)
        return self.pool.execute_query(query, params)

    def create_many(self, kind: RecordKind, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        self._check_kind(kind)
        if not records:
            return []

        names = kind.field_names
        row_placeholder = sql.SQL("({})").format(sql.SQL(", ").join([sql.Placeholder()] * len(names)))
        statement = sql.SQL(
            "INSERT INTO {table} ({columns}) VALUES {values} "
            "ON CONFLICT DO NOTHING RETURNING id, {key_columns}"
        ).format(
            table=sql.Identifier(kind.table),
            columns=sql.SQL(", ").join(sql.Identifier(n) for n in names),
            values=sql.SQL(", ").join([row_placeholder] * len(records)),
            key_columns=self._key_columns(kind),
        )
        params = tuple(record.get(name) for record in records for name in names)
        return self._write(statement, params, returning=True)

    def update_by_id(self, kind: RecordKind, record_id: int, values: dict[str, Any]) -> None:
        self._check_kind(kind)
        names = [name for name in kind.field_names if name in values]
        statement = sql.SQL("UPDATE {table} SET {assignments}, updated_at = now() WHERE id = %s").format(
            table=sql.Identifier(kind.table),
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(n)) for n in names
            ),
        )
        params = tuple(values[n] for n in names) + (record_id,)
        self._write(statement, params)

    def delete_many(self, kind: RecordKind, ids: list[int]) -> int:
        self._check_kind(kind)
        if not ids:
            return 0
        statement = sql.SQL("DELETE FROM {table} WHERE id = ANY(%s)").format(
            table=sql.Identifier(kind.table),
        )
        return self._write(statement, (list(ids),))

    def count(self, kind: RecordKind) -> int:
        self._check_kind(kind)
        query = sql.SQL("SELECT count(*) AS n FROM {table}").format(table=sql.Identifier(kind.table))
        return self.pool.execute_query(query)[0]["n"]

    def load_reference_identifiers(self) -> set[str]:
        rows = self.pool.execute_query("SELECT tin FROM clients")
        return {row["tin"] for row in rows}

    def create_clients(self, clients: list[tuple[str, str]]) -> int:
        created = 0
        for start in range(0, len(clients), CLIENT_CHUNK_SIZE):
            chunk = clients[start:start + CLIENT_CHUNK_SIZE]
            statement = sql.SQL(
                "INSERT INTO clients (tin, company_name) VALUES {values} "
                "ON CONFLICT (tin) DO NOTHING RETURNING tin"
            ).format(values=sql.SQL(", ").join([sql.SQL("(%s, %s)")] * len(chunk)))
            params = tuple(value for client in chunk for value in client)
            created += len(self._write(statement, params, returning=True))
        return created

    def save_import_metadata(self, metadata: ImportMetadata) -> None:
        upsert_import_metadata(self.pool, metadata)

    def get_import_metadata(self, import_type: str | None = None) -> list[ImportMetadata]:
        return query_import_metadata(self.pool, import_type)
