"""
Infrastructure package for the batch insert benchmark.

Centralizes database concerns (connection factory, statement adapters, schema).
Keep this layer focused on I/O and resource management, decoupled from
engine/orchestrator logic.
"""

from batch_bench.infrastructure.backends import (
    ExecutionMode,
    PsycopgBackend,
    SqliteBackend,
)
from batch_bench.infrastructure.db_factory import (
    available_backends,
    build_dsn,
    get_sync_connection,
    open_backend,
)
from batch_bench.infrastructure.schema import create_schema, drop_schema

__all__ = [
    "ExecutionMode",
    "PsycopgBackend",
    "SqliteBackend",
    "available_backends",
    "build_dsn",
    "create_schema",
    "drop_schema",
    "get_sync_connection",
    "open_backend",
]
