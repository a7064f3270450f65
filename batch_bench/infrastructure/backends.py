"""
Prepared-statement adapters for the supported storage backends.

Each adapter keeps the bound parameters of the current row in positional
slots and, depending on the execution mode, either buffers queued rows until
`execute_batch` (sent with `executemany`) or sends each row as soon as it is
queued. Driver exceptions are wrapped in BackendError at this seam so the
engine sees a single error type.
"""

from __future__ import annotations

import abc
import sqlite3
from enum import Enum
from typing import Any, Iterable, List, Tuple

import psycopg

from batch_bench.engine.statements import StatementTemplate
from batch_bench.errors import BackendError, BindError, ConfigError

_UNBOUND = object()


class ExecutionMode(str, Enum):
    BATCHED = "batched"
    IMMEDIATE = "immediate"

    @classmethod
    def parse(cls, value: "str | ExecutionMode") -> "ExecutionMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            available = ", ".join(mode.value for mode in cls)
            raise ConfigError(f"Unknown execution mode '{value}'. Available: {available}") from None


class BufferedStatement(abc.ABC):
    """
    Shared slot and batch-buffer handling for driver-specific statements.

    Subclasses set `placeholder` and implement the two driver calls.
    """

    placeholder: str = "%s"

    def __init__(self, template: StatementTemplate, mode: ExecutionMode) -> None:
        self.template = template
        self.mode = mode
        self.sql = template.sql(self.placeholder)
        self._slots: List[Any] = [_UNBOUND] * template.arity
        self._batch: List[Tuple[Any, ...]] = []
        self.closed = False

    @property
    def parameters(self) -> Tuple[Any, ...]:
        return tuple(None if value is _UNBOUND else value for value in self._slots)

    @property
    def queued_rows(self) -> int:
        return len(self._batch)

    def set_parameter(self, position: int, value: Any) -> None:
        if not 1 <= position <= self.template.arity:
            raise BindError(
                f"{self.template.table}: slot {position} out of range 1..{self.template.arity}"
            )
        self._slots[position - 1] = value

    def clear_parameters(self) -> None:
        self._slots = [_UNBOUND] * self.template.arity

    def add_row(self) -> None:
        if any(value is _UNBOUND for value in self._slots):
            raise BindError(f"{self.template.table}: row queued with unbound slots")
        row = tuple(self._slots)
        if self.mode is ExecutionMode.IMMEDIATE:
            self._execute_one(row)
        else:
            self._batch.append(row)

    def execute_batch(self) -> int:
        if not self._batch:
            return 0
        rows = list(self._batch)
        self._execute_many(rows)
        self._batch.clear()
        return len(rows)

    @abc.abstractmethod
    def _execute_one(self, row: Tuple[Any, ...]) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def _execute_many(self, rows: List[Tuple[Any, ...]]) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def close(self) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


class PsycopgStatement(BufferedStatement):
    """Statement bound to a psycopg 3 cursor; single rows use server-side prepare."""

    placeholder = "%s"

    def __init__(
        self, conn: psycopg.Connection, template: StatementTemplate, mode: ExecutionMode
    ) -> None:
        super().__init__(template, mode)
        self._cursor = conn.cursor()

    def _execute_one(self, row: Tuple[Any, ...]) -> None:
        try:
            self._cursor.execute(self.sql, row, prepare=True)
        except psycopg.Error as exc:
            raise BackendError(f"{self.template.table}: insert failed: {exc}") from exc

    def _execute_many(self, rows: List[Tuple[Any, ...]]) -> None:
        try:
            self._cursor.executemany(self.sql, rows)
        except psycopg.Error as exc:
            raise BackendError(
                f"{self.template.table}: batch of {len(rows)} rows failed: {exc}"
            ) from exc

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._cursor.close()


class SqliteStatement(BufferedStatement):
    """Statement bound to a sqlite3 cursor (qmark paramstyle)."""

    placeholder = "?"

    def __init__(
        self, conn: sqlite3.Connection, template: StatementTemplate, mode: ExecutionMode
    ) -> None:
        super().__init__(template, mode)
        self._cursor = conn.cursor()

    def _execute_one(self, row: Tuple[Any, ...]) -> None:
        try:
            self._cursor.execute(self.sql, row)
        except sqlite3.Error as exc:
            raise BackendError(f"{self.template.table}: insert failed: {exc}") from exc

    def _execute_many(self, rows: List[Tuple[Any, ...]]) -> None:
        try:
            self._cursor.executemany(self.sql, rows)
        except sqlite3.Error as exc:
            raise BackendError(
                f"{self.template.table}: batch of {len(rows)} rows failed: {exc}"
            ) from exc

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._cursor.close()


class PsycopgBackend:
    """PostgreSQL connection wrapper handing out PsycopgStatement handles."""

    label: str = "postgresql"
    dialect: str = "postgresql"

    def __init__(self, conn: psycopg.Connection, mode: ExecutionMode = ExecutionMode.BATCHED) -> None:
        self.conn = conn
        self.mode = mode

    def prepare(self, template: StatementTemplate) -> PsycopgStatement:
        return PsycopgStatement(self.conn, template, self.mode)

    def execute_ddl(self, statements: Iterable[str]) -> None:
        try:
            with self.conn.cursor() as cur:
                for sql in statements:
                    cur.execute(sql)
            self.conn.commit()
        except psycopg.Error as exc:
            raise BackendError(f"DDL failed: {exc}") from exc

    def commit(self) -> None:
        try:
            self.conn.commit()
        except psycopg.Error as exc:
            raise BackendError(f"commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.conn.rollback()

    def close(self) -> None:
        self.conn.close()


class SqliteBackend:
    """sqlite3 connection wrapper with foreign key enforcement switched on."""

    label: str = "sqlite"
    dialect: str = "sqlite"

    def __init__(
        self, conn: sqlite3.Connection, mode: ExecutionMode = ExecutionMode.BATCHED
    ) -> None:
        self.conn = conn
        self.mode = mode
        self.conn.execute("PRAGMA foreign_keys = ON")

    def prepare(self, template: StatementTemplate) -> SqliteStatement:
        return SqliteStatement(self.conn, template, self.mode)

    def execute_ddl(self, statements: Iterable[str]) -> None:
        try:
            for sql in statements:
                self.conn.execute(sql)
            self.conn.commit()
        except sqlite3.Error as exc:
            raise BackendError(f"DDL failed: {exc}") from exc

    def commit(self) -> None:
        try:
            self.conn.commit()
        except sqlite3.Error as exc:
            raise BackendError(f"commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.conn.rollback()

    def close(self) -> None:
        self.conn.close()


__all__ = [
    "BufferedStatement",
    "ExecutionMode",
    "PsycopgBackend",
    "PsycopgStatement",
    "SqliteBackend",
    "SqliteStatement",
]
