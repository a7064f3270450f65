"""
Database connection factory utilities for the batch insert benchmark.

Provides DSN composition, a retrying PostgreSQL connect, and `open_backend`,
the scoped acquisition used by the orchestrator: every run gets its own
connection, committed on success, rolled back on failure and always closed.

Retries apply to establishing the PostgreSQL connection only; statement
execution inside a run is never retried.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Generator, List, Optional, Union

import psycopg
from psycopg import Connection
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from batch_bench.config import get_settings
from batch_bench.errors import BackendError, ConfigError
from batch_bench.infrastructure.backends import ExecutionMode, PsycopgBackend, SqliteBackend
from batch_bench.utils.logging import get_logger

log = get_logger(__name__)

Backend = Union[PsycopgBackend, SqliteBackend]

_BACKENDS = ("postgresql", "sqlite")


def build_dsn() -> str:
    """Compose a DSN string from settings."""
    settings = get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Parameters
    ----------
    dsn : str, optional
        Connection string; defaults to the one built from settings.

    Returns
    -------
    Connection
        A new psycopg connection instance.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


def available_backends() -> List[str]:
    """List available backend names."""
    return sorted(_BACKENDS)


def _connect(
    name: str,
    mode: ExecutionMode,
    dsn_override: Optional[str],
    sqlite_path: Optional[str],
) -> Backend:
    if name == "postgresql":
        try:
            return PsycopgBackend(get_sync_connection(dsn_override), mode)
        except psycopg.Error as exc:
            raise BackendError(f"postgresql: connection failed: {exc}") from exc
    if name == "sqlite":
        path = sqlite_path or get_settings().sqlite_path
        try:
            return SqliteBackend(sqlite3.connect(path), mode)
        except sqlite3.Error as exc:
            raise BackendError(f"sqlite: cannot open {path}: {exc}") from exc
    raise ConfigError(f"Unknown backend '{name}'. Available: {', '.join(available_backends())}")


@contextmanager
def open_backend(
    name: str,
    mode: "str | ExecutionMode" = ExecutionMode.BATCHED,
    dsn_override: Optional[str] = None,
    sqlite_path: Optional[str] = None,
) -> Generator[Backend, None, None]:
    """
    Context manager yielding an exclusive backend connection.

    Example
    -------
        with open_backend("sqlite", "batched") as backend:
            create_schema(backend)
            BatchInsertEngine(backend, WorkloadConfig()).run()
    """
    backend = _connect(name, ExecutionMode.parse(mode), dsn_override, sqlite_path)
    try:
        yield backend
        backend.commit()
    except BaseException:
        try:
            backend.rollback()
        except Exception:  # noqa: BLE001 - keep the original error
            log.warning("Rollback failed", extra={"backend": name}, exc_info=True)
        raise
    finally:
        backend.close()


__all__ = [
    "available_backends",
    "build_dsn",
    "get_sync_connection",
    "open_backend",
]
