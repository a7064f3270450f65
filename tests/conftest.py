"""
Pytest configuration for the batch insert benchmark.

Provides fixtures for:
- Recording fakes of the backend/statement protocols (no database needed)
- Settings and DSN for PostgreSQL integration tests
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Tuple

import psycopg
import pytest

from batch_bench.config import Settings
from batch_bench.engine.statements import StatementTemplate
from batch_bench.errors import BackendError


class RecordingStatement:
    """In-memory statement that logs every call into a shared event list."""

    def __init__(
        self,
        template: StatementTemplate,
        events: List[Tuple[Any, ...]],
        fail_on_flush: bool = False,
    ) -> None:
        self.template = template
        self.events = events
        self.fail_on_flush = fail_on_flush
        self._slots: List[Any] = [None] * template.arity
        self.queued: List[Tuple[Any, ...]] = []
        self.executed: List[Tuple[Any, ...]] = []
        self.closed = False

    @property
    def table(self) -> str:
        return self.template.table

    @property
    def parameters(self) -> Tuple[Any, ...]:
        return tuple(self._slots)

    def set_parameter(self, position: int, value: Any) -> None:
        self.events.append(("set", self.table, position, value))
        self._slots[position - 1] = value

    def clear_parameters(self) -> None:
        self._slots = [None] * self.template.arity

    def add_row(self) -> None:
        self.events.append(("add_row", self.table))
        self.queued.append(tuple(self._slots))

    def execute_batch(self) -> int:
        if self.fail_on_flush:
            raise BackendError(f"{self.table}: simulated flush failure")
        count = len(self.queued)
        self.events.append(("execute_batch", self.table, count))
        self.executed.extend(self.queued)
        self.queued.clear()
        return count

    def close(self) -> None:
        self.closed = True
        self.events.append(("close", self.table))


class RecordingBackend:
    """Backend fake handing out RecordingStatement handles."""

    label = "recording"
    dialect = "sqlite"

    def __init__(self, fail_flush_on: Optional[str] = None) -> None:
        self.fail_flush_on = fail_flush_on
        self.events: List[Tuple[Any, ...]] = []
        self.statements: Dict[str, RecordingStatement] = {}
        self.ddl: List[str] = []
        self.committed = False
        self.closed = False

    def prepare(self, template: StatementTemplate) -> RecordingStatement:
        self.events.append(("prepare", template.table))
        statement = RecordingStatement(
            template, self.events, fail_on_flush=template.table == self.fail_flush_on
        )
        self.statements[template.table] = statement
        return statement

    def execute_ddl(self, statements) -> None:
        self.ddl.extend(statements)

    def commit(self) -> None:
        self.committed = True

    def rollback(self) -> None:
        self.committed = False

    def close(self) -> None:
        self.closed = True

    def flushes(self) -> List[Tuple[str, int]]:
        return [(event[1], event[2]) for event in self.events if event[0] == "execute_batch"]


@pytest.fixture
def recording_statement_cls():
    return RecordingStatement


@pytest.fixture
def recording_backend_cls():
    return RecordingBackend


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "batch_bench"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def postgres_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to skip PostgreSQL tests when no server is running.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False
