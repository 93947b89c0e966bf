"""
Pytest configuration and fixtures for logistics-sync tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
from pathlib import Path
from typing import Callable, Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from logistics_sync.config import ImportSettings
from logistics_sync.core.kinds import BUILTIN_KINDS
from logistics_sync.core.models import FieldSpec, FieldType, RecordKind
from logistics_sync.warehouse.connection import DatabaseConnectionPool
from logistics_sync.warehouse.memory_store import InMemoryRecordStore
from logistics_sync.warehouse.postgres_store import PostgresRecordStore

KNOWN_TIN = "1234567890"
OTHER_TIN = "7701234567"


# =======================
# RECORD KIND FIXTURES
# =======================

def make_shipments_kind(**overrides) -> RecordKind:
    """
    Small record kind with the header `Branch;TIN;Date;Qty`.

    Business Key: (branch, client_tin, date). Window field: date.
    """
    definition = {
        "name": "shipments",
        "table": "shipments",
        "file_name": "shipments.csv",
        "fields": [
            FieldSpec(name="branch", labels=["Branch"]),
            FieldSpec(name="client_tin", labels=["TIN"], field_type=FieldType.IDENTIFIER),
            FieldSpec(name="date", labels=["Date"], field_type=FieldType.DATE),
            FieldSpec(name="quantity", labels=["Qty"], field_type=FieldType.INTEGER,
                      required=False, default=0),
        ],
        "key_fields": ["branch", "client_tin", "date"],
        "reference_field": "client_tin",
        "window_fields": ["date"],
    }
    definition.update(overrides)
    return RecordKind(**definition)


@pytest.fixture
def shipments_kind() -> RecordKind:
    """Record kind with the header `Branch;TIN;Date;Qty`."""
    return make_shipments_kind()


@pytest.fixture
def compared_shipments_kind() -> RecordKind:
    """Same kind, comparing quantity before writing."""
    return make_shipments_kind(compare_fields=["quantity"])


# =======================
# STORE FIXTURES
# =======================

@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    """In-memory store that knows the test clients."""
    return InMemoryRecordStore(clients={KNOWN_TIN: "Test client", OTHER_TIN: "Other client"})


@pytest.fixture
def settings(tmp_path) -> ImportSettings:
    """Import settings reading extracts from a temporary directory."""
    return ImportSettings(
        data_dir=tmp_path,
        create_batch_size=2,
        update_batch_size=2,
        index_page_size=2,
        update_concurrency=4,
        kind_pause_seconds=0,
    )


# =======================
# FILE FIXTURES
# =======================

@pytest.fixture
def write_extract(tmp_path) -> Callable[..., Path]:
    """
    Write an extract into the temporary data directory.

    Returns:
        Function (file_name, lines, encoding="utf-8") -> Path
    """
    def _write(file_name: str, lines: list[str], encoding: str = "utf-8") -> Path:
        path = tmp_path / file_name
        path.write_bytes(("\r\n".join(lines) + "\r\n").encode(encoding))
        return path

    return _write


# DATABASE FIXTURES (Testcontainers)
# =======================

TEST_DATABASE = {"dbname": "test_datawarehouse", "user": "test_pipeline", "password": "test_password"}
INIT_SQL = Path(__file__).resolve().parents[1] / "docker" / "init-db.sql"


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    PostgreSQL 16 container with the store schema from docker/init-db.sql

    Yields:
        Started PostgresContainer
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username=TEST_DATABASE["user"],
        password=TEST_DATABASE["password"],
        dbname=TEST_DATABASE["dbname"],
    ) as postgres:
        with psycopg.connect(
            host=postgres.get_container_host_ip(),
            port=int(postgres.get_exposed_port(5432)),
            **TEST_DATABASE,
        ) as conn:
            conn.execute(INIT_SQL.read_text(encoding="utf-8"))
        yield postgres


@pytest.fixture(scope="session")
def db_pool(postgres_container) -> Generator[DatabaseConnectionPool, None, None]:
    """Connection pool on the test database, shared by the session."""
    with DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database=TEST_DATABASE["dbname"],
        user=TEST_DATABASE["user"],
        password=TEST_DATABASE["password"],
        min_size=1,
        max_size=8,
    ) as pool:
        yield pool


@pytest.fixture
def postgres_store(db_pool) -> PostgresRecordStore:
    """Store on emptied tables, with the test clients loaded."""
    tables = [kind.table for kind in BUILTIN_KINDS.values()] + ["clients", "import_metadata"]
    db_pool.execute_command(f"TRUNCATE TABLE {', '.join(tables)} RESTART IDENTITY")

    store = PostgresRecordStore(db_pool)
    store.create_clients([(KNOWN_TIN, "Test client"), (OTHER_TIN, "Other client")])
    return store
