"""
Insert statement templates for the two record kinds driven by the engine.

Each template declares its table and an ordered tuple of typed positional
slots. The slot order is the bind order; backends render the SQL with their
own placeholder style.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Protocol, Tuple, runtime_checkable


class SlotKind(str, Enum):
    TEXT = "text"
    INTEGER = "integer"

    def accepts(self, value: Any) -> bool:
        if self is SlotKind.INTEGER:
            # bool is an int subclass but never a valid key/version
            return isinstance(value, int) and not isinstance(value, bool)
        return isinstance(value, str)


@dataclass(frozen=True)
class Slot:
    name: str
    kind: SlotKind


@dataclass(frozen=True)
class StatementTemplate:
    table: str
    slots: Tuple[Slot, ...]

    @property
    def arity(self) -> int:
        return len(self.slots)

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(slot.name for slot in self.slots)

    def sql(self, placeholder: str = "%s") -> str:
        """Render the INSERT command using the backend's placeholder token."""
        columns = ", ".join(self.columns)
        values = ", ".join([placeholder] * self.arity)
        return f"INSERT INTO {self.table} ({columns}) VALUES ({values})"


INSERT_POST = StatementTemplate(
    table="post",
    slots=(
        Slot("title", SlotKind.TEXT),
        Slot("version", SlotKind.INTEGER),
        Slot("id", SlotKind.INTEGER),
    ),
)

INSERT_POST_COMMENT = StatementTemplate(
    table="post_comment",
    slots=(
        Slot("post_id", SlotKind.INTEGER),
        Slot("review", SlotKind.TEXT),
        Slot("version", SlotKind.INTEGER),
        Slot("id", SlotKind.INTEGER),
    ),
)


@runtime_checkable
class PreparedStatement(Protocol):
    """
    A reusable statement handle for one template, as seen by the engine.

    Positions are 1-based. `add_row` queues the currently bound parameters;
    whether they are buffered or sent at once is up to the backend.
    `execute_batch` submits whatever is buffered and returns the row count.
    """

    template: StatementTemplate

    @property
    def parameters(self) -> Tuple[Any, ...]:
        ...

    def set_parameter(self, position: int, value: Any) -> None:
        ...

    def clear_parameters(self) -> None:
        ...

    def add_row(self) -> None:
        ...

    def execute_batch(self) -> int:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class BackendConnection(Protocol):
    """
    An exclusive connection to one storage backend.

    Attributes
    ----------
    label : str
        Short backend identifier used in reports (e.g. "postgresql").
    """

    label: str

    def prepare(self, template: StatementTemplate) -> PreparedStatement:
        ...

    def execute_ddl(self, statements: Iterable[str]) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...

    def close(self) -> None:
        ...


__all__ = [
    "BackendConnection",
    "INSERT_POST",
    "INSERT_POST_COMMENT",
    "PreparedStatement",
    "Slot",
    "SlotKind",
    "StatementTemplate",
]
