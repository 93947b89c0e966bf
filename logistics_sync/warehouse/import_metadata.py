"""
Import metadata operations.

One row per record kind in import_metadata, upserted at the end of every run
(successful or not). The row is a snapshot of the last run, not a history.
"""

from logistics_sync.core.models import ImportMetadata
from logistics_sync.observability.logger import get_logger
from logistics_sync.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)

UPSERT_SQL = """
    INSERT INTO import_metadata (
        import_type,
        last_import_at,
        records_imported,
        records_updated,
        records_deleted,
        records_skipped,
        errors,
        status,
        error_message
    ) VALUES (
        %(import_type)s,
        %(last_import_at)s,
        %(records_imported)s,
        %(records_updated)s,
        %(records_deleted)s,
        %(records_skipped)s,
        %(errors)s,
        %(status)s,
        %(error_message)s
    )
    ON CONFLICT (import_type) DO UPDATE SET
        last_import_at = EXCLUDED.last_import_at,
        records_imported = EXCLUDED.records_imported,
        records_updated = EXCLUDED.records_updated,
        records_deleted = EXCLUDED.records_deleted,
        records_skipped = EXCLUDED.records_skipped,
        errors = EXCLUDED.errors,
        status = EXCLUDED.status,
        error_message = EXCLUDED.error_message,
        updated_at = now()
"""

SELECT_SQL = """
    SELECT import_type, last_import_at, records_imported, records_updated,
           records_deleted, records_skipped, errors, status, error_message
    FROM import_metadata
"""


def upsert_import_metadata(pool: DatabaseConnectionPool, metadata: ImportMetadata) -> None:
    """
    Insert or overwrite the metadata row of a kind.

    Args:
        pool: Database connection pool
        metadata: Snapshot of the last run
    """
    pool.execute_command(UPSERT_SQL, metadata.model_dump())
    logger.debug(
        f"Saved import metadata for {metadata.import_type}",
        extra={"kind": metadata.import_type, "status": metadata.status},
    )


def query_import_metadata(pool: DatabaseConnectionPool, import_type: str | None = None) -> list[ImportMetadata]:
    """
    Read metadata rows.

    Args:
        pool: Database connection pool
        import_type: Kind name, or None for every kind

    Returns:
        ImportMetadata models ordered by kind name
    """
    if import_type is None:
        rows = pool.execute_query(SELECT_SQL + " ORDER BY import_type")
    else:
        rows = pool.execute_query(SELECT_SQL + " WHERE import_type = %s", (import_type,))
    return [ImportMetadata(**row) for row in rows]
