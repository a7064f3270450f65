"""
Flush policies for the batch execution engine.

A policy is a pure predicate consulted after each child row is queued:

    should_flush(rows_since_last_flush, batch_size, external_index) -> bool

`external_index` is the engine's combined post x comment cursor, so the
default policy flushes both statements in lockstep. Policies never touch the
backend themselves.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Protocol, runtime_checkable

from batch_bench.errors import ConfigError


def check_batch_size(batch_size: int) -> None:
    """Raise ConfigError unless `batch_size` is a positive integer."""
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        raise ConfigError(f"batch_size must be a positive integer, got {batch_size!r}")


@runtime_checkable
class FlushStrategy(Protocol):
    """
    Common interface all flush policies implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the cadence.
    """

    name: str
    description: str

    def check(self, batch_size: int) -> None:
        ...

    def should_flush(
        self, rows_since_last_flush: int, batch_size: int, external_index: int
    ) -> bool:
        ...


class ModuloFlushStrategy:
    """
    Flush whenever `external_index % batch_size == 0`.

    Because the index is `(post_index + 1) * comment_index`, the first comment
    of every post (index 0) always triggers.
    """

    name: str = "modulo"
    description: str = "Flush both statements when the combined cursor is a multiple of the batch size."

    def check(self, batch_size: int) -> None:
        check_batch_size(batch_size)

    def should_flush(
        self, rows_since_last_flush: int, batch_size: int, external_index: int
    ) -> bool:
        self.check(batch_size)
        return external_index % batch_size == 0


class RowCountFlushStrategy:
    """
    Flush once the evaluated statement has queued `batch_size` rows.

    Unlike the default policy this follows the comment statement's own row
    count rather than the combined cursor.
    """

    name: str = "row_count"
    description: str = "Flush both statements when the comment batch reaches the batch size."

    def check(self, batch_size: int) -> None:
        check_batch_size(batch_size)

    def should_flush(
        self, rows_since_last_flush: int, batch_size: int, external_index: int
    ) -> bool:
        self.check(batch_size)
        return rows_since_last_flush >= batch_size


class DrainOnlyFlushStrategy:
    """Never flush mid-run; everything is sent by the terminal drain."""

    name: str = "drain_only"
    description: str = "Queue every row and flush once at the end of the run."

    def check(self, batch_size: int) -> None:
        check_batch_size(batch_size)

    def should_flush(
        self, rows_since_last_flush: int, batch_size: int, external_index: int
    ) -> bool:
        self.check(batch_size)
        return False


def _flush_strategy_factories() -> Dict[str, Callable[[], FlushStrategy]]:
    """Registry of available flush policies."""
    return {
        "modulo": lambda: ModuloFlushStrategy(),
        "row_count": lambda: RowCountFlushStrategy(),
        "drain_only": lambda: DrainOnlyFlushStrategy(),
    }


def available_flush_strategies() -> List[str]:
    """List available flush policy names."""
    return sorted(_flush_strategy_factories().keys())


def resolve_flush_strategy(name: str) -> FlushStrategy:
    factories = _flush_strategy_factories()
    if name not in factories:
        raise ConfigError(
            f"Unknown flush strategy '{name}'. Available: {', '.join(sorted(factories))}"
        )
    return factories[name]()


__all__ = [
    "DrainOnlyFlushStrategy",
    "FlushStrategy",
    "ModuloFlushStrategy",
    "RowCountFlushStrategy",
    "available_flush_strategies",
    "check_batch_size",
    "resolve_flush_strategy",
]
