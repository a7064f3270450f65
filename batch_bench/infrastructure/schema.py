"""
Declarative schema for the benchmark tables.

`post` and `post_comment` receive the workload's inserts; `post_details`
shares the post primary key and is part of the schema only. Keys are assigned
by the client, so no identity/serial columns are declared.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from batch_bench.engine.statements import BackendConnection
from batch_bench.errors import ConfigError

TABLES: Tuple[str, ...] = ("post", "post_comment", "post_details")

_CREATE: Dict[str, List[str]] = {
    "postgresql": [
        """
        CREATE TABLE post (
            id BIGINT PRIMARY KEY,
            title VARCHAR(255),
            version INTEGER NOT NULL DEFAULT 0
        )
        """,
        """
        CREATE TABLE post_comment (
            id BIGINT PRIMARY KEY,
            post_id BIGINT REFERENCES post (id),
            review VARCHAR(255),
            version INTEGER NOT NULL DEFAULT 0
        )
        """,
        """
        CREATE TABLE post_details (
            id BIGINT PRIMARY KEY REFERENCES post (id),
            created_on TIMESTAMPTZ
        )
        """,
    ],
    "sqlite": [
        """
        CREATE TABLE post (
            id INTEGER PRIMARY KEY,
            title TEXT,
            version INTEGER NOT NULL DEFAULT 0
        )
        """,
        """
        CREATE TABLE post_comment (
            id INTEGER PRIMARY KEY,
            post_id INTEGER REFERENCES post (id),
            review TEXT,
            version INTEGER NOT NULL DEFAULT 0
        )
        """,
        """
        CREATE TABLE post_details (
            id INTEGER PRIMARY KEY REFERENCES post (id),
            created_on TEXT
        )
        """,
    ],
}


def _dialect(backend: BackendConnection) -> str:
    dialect = getattr(backend, "dialect", backend.label)
    if dialect not in _CREATE:
        raise ConfigError(f"No schema for dialect '{dialect}'. Available: {', '.join(_CREATE)}")
    return dialect


def drop_statements(dialect: str) -> List[str]:
    """DROP statements in reverse dependency order."""
    cascade = " CASCADE" if dialect == "postgresql" else ""
    return [f"DROP TABLE IF EXISTS {table}{cascade}" for table in reversed(TABLES)]


def create_statements(dialect: str) -> List[str]:
    if dialect not in _CREATE:
        raise ConfigError(f"No schema for dialect '{dialect}'. Available: {', '.join(_CREATE)}")
    return list(_CREATE[dialect])


def create_schema(backend: BackendConnection, drop_existing: bool = True) -> None:
    """Create the benchmark tables, dropping any previous copies first."""
    dialect = _dialect(backend)
    statements: List[str] = []
    if drop_existing:
        statements.extend(drop_statements(dialect))
    statements.extend(create_statements(dialect))
    backend.execute_ddl(statements)


def drop_schema(backend: BackendConnection) -> None:
    backend.execute_ddl(drop_statements(_dialect(backend)))


__all__ = [
    "TABLES",
    "create_schema",
    "create_statements",
    "drop_schema",
    "drop_statements",
]
