"""pytest configuration for customs tests."""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from customs.db import SqlDialect
from customs.query import TraceFilterSession

ATTACHED_DATABASES = ("petstore", "backoffice")

SCHEMA = [
    """
    CREATE TABLE petstore.users (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT,
        region TEXT
    )
    """,
    """
    CREATE TABLE petstore.orders (
        id INTEGER PRIMARY KEY,
        user_id INTEGER,
        total REAL
    )
    """,
    """
    CREATE TABLE petstore.user_contact (
        user_id INTEGER NOT NULL,
        phone TEXT,
        country TEXT
    )
    """,
    """
    CREATE TABLE petstore.legacy_notes (
        userid INTEGER NOT NULL,
        note TEXT
    )
    """,
    """
    CREATE TABLE petstore.user_pref_types (
        id INTEGER PRIMARY KEY,
        label TEXT
    )
    """,
    """
    CREATE TABLE backoffice.vendors (
        id INTEGER PRIMARY KEY,
        name TEXT,
        passphrase TEXT
    )
    """,
    """
    CREATE TABLE backoffice.vendor_history (
        id INTEGER PRIMARY KEY,
        vendor_id INTEGER,
        created_at TEXT
    )
    """,
]

DATA = [
    "INSERT INTO petstore.users VALUES (1, 'Alice', 'alice@corp.test', 'EU')",
    "INSERT INTO petstore.users VALUES (2, 'Bob', 'bob@corp.test', 'US')",
    "INSERT INTO petstore.users VALUES (3, 'Carla', NULL, 'EU')",
    "INSERT INTO petstore.orders VALUES (10, 1, 12.5)",
    "INSERT INTO petstore.orders VALUES (11, 2, 7.25)",
    "INSERT INTO petstore.orders VALUES (12, 3, 99.0)",
    "INSERT INTO petstore.orders VALUES (13, 99, 1.0)",
    "INSERT INTO petstore.user_contact VALUES (3, '555-0103', 'DE')",
    "INSERT INTO petstore.user_contact VALUES (1, '555-0101', NULL)",
    "INSERT INTO petstore.user_contact VALUES (2, '555-0102', 'US')",
    "INSERT INTO petstore.legacy_notes VALUES (1, 'first')",
    "INSERT INTO petstore.legacy_notes VALUES (2, 'second')",
    "INSERT INTO petstore.legacy_notes VALUES (3, 'third')",
    "INSERT INTO backoffice.vendors VALUES (1, 'Acme', 'hunter2')",
    "INSERT INTO backoffice.vendors VALUES (2, 'Globex', 'swordfish')",
    "INSERT INTO backoffice.vendors VALUES (5, 'Initech', 'letmein')",
    "INSERT INTO backoffice.vendor_history VALUES (100, 1, '2024-01-01')",
    "INSERT INTO backoffice.vendor_history VALUES (101, 5, '2024-01-02')",
    "INSERT INTO backoffice.vendor_history VALUES (102, 2, '2024-01-03')",
]


def _attach_databases(dbapi_conn, connection_record):
    for name in ATTACHED_DATABASES:
        dbapi_conn.execute(f"ATTACH DATABASE ':memory:' AS {name}")


@pytest.fixture
def engine():
    """In-memory SQLite engine with `petstore` and `backoffice` attached.

    StaticPool keeps the single connection (and so the attached in-memory
    databases) alive for the whole test.
    """
    engine = create_engine("sqlite:///:memory:", poolclass=StaticPool, echo=False)
    event.listen(engine, "connect", _attach_databases)
    with engine.begin() as conn:
        for sql in SCHEMA + DATA:
            conn.exec_driver_sql(sql)
    yield engine
    engine.dispose()


@pytest.fixture
def connection(engine):
    """Export connection."""
    with engine.connect() as conn:
        yield conn


@pytest.fixture
def dialect(connection):
    return SqlDialect.for_connection(connection)


@pytest.fixture
def session(connection, dialect):
    """Trace filter session on the export connection."""
    return TraceFilterSession(connection, dialect)
