"""
Batch execution engine for the post/comment insert workload.

The engine owns one run: it prepares one statement per record kind, binds
every post followed by its comments, queues each row, asks the flush policy
after every comment whether to flush, and always drains both statements at
the end. Posts are flushed before comments on every flush so that comment
foreign keys always refer to posts the backend has already received.

State machine::

    IDLE -> RUNNING -> (FLUSHING -> RUNNING)* -> DRAINING -> DONE
    any non-DONE state -> ABORTED on error

Errors are never retried; the engine records ABORTED and re-raises.
"""

from __future__ import annotations

from contextlib import ExitStack, closing
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from batch_bench.domain.models import WorkloadConfig, comment_for, post_for
from batch_bench.engine.accumulator import BatchAccumulator
from batch_bench.engine.binder import ParameterBinder
from batch_bench.engine.flush import FlushStrategy, ModuloFlushStrategy
from batch_bench.engine.statements import (
    INSERT_POST,
    INSERT_POST_COMMENT,
    BackendConnection,
    StatementTemplate,
)
from batch_bench.utils.logging import get_logger

log = get_logger(__name__)


class EngineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FLUSHING = "flushing"
    DRAINING = "draining"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class EngineStats:
    """
    Counters collected during one engine run.

    `flush_count` counts engine-level flushes (both statements together):
    every policy-triggered flush plus the terminal drain.
    """

    parent_binds: int = 0
    child_binds: int = 0
    triggered_flushes: int = 0
    terminal_flushes: int = 0
    parent_backend_flushes: int = 0
    child_backend_flushes: int = 0
    rows_flushed: int = 0
    state: EngineState = EngineState.IDLE
    history: List[EngineState] = field(default_factory=list)

    @property
    def flush_count(self) -> int:
        return self.triggered_flushes + self.terminal_flushes

    @property
    def rows(self) -> int:
        return self.parent_binds + self.child_binds


class BatchInsertEngine:
    """
    Drive one post/comment insert workload through a backend connection.

    Parameters
    ----------
    connection : BackendConnection
        Exclusive connection for this run; statements are prepared from it.
    workload : WorkloadConfig
        Post count, comments per post and batch size.
    flush_strategy : FlushStrategy, optional
        Flush policy; defaults to ModuloFlushStrategy.
    """

    def __init__(
        self,
        connection: BackendConnection,
        workload: WorkloadConfig,
        flush_strategy: Optional[FlushStrategy] = None,
        parent_template: StatementTemplate = INSERT_POST,
        child_template: StatementTemplate = INSERT_POST_COMMENT,
    ) -> None:
        self.connection = connection
        self.workload = workload
        self.flush_strategy = flush_strategy or ModuloFlushStrategy()
        self.parent_binder = ParameterBinder(parent_template)
        self.child_binder = ParameterBinder(child_template)
        self.stats = EngineStats()
        self.stats.history.append(EngineState.IDLE)

    @property
    def state(self) -> EngineState:
        return self.stats.state

    def _transition(self, state: EngineState) -> None:
        self.stats.state = state
        self.stats.history.append(state)

    def _flush(self, parent: BatchAccumulator, child: BatchAccumulator) -> None:
        self.stats.rows_flushed += parent.flush()
        self.stats.rows_flushed += child.flush()

    def run(self) -> EngineStats:
        """
        Execute the workload and return the collected counters.

        Raises
        ------
        ConfigError
            If the batch size is rejected by the flush policy (before any bind).
        BindError
            If a row does not match its statement's slots.
        BackendError
            If the backend fails to queue or flush rows.
        """
        if self.state is not EngineState.IDLE:
            raise RuntimeError("BatchInsertEngine instances run only once")

        workload = self.workload
        batch_size = workload.batch_size
        try:
            self.flush_strategy.check(batch_size)
            with ExitStack() as stack:
                parent_statement = stack.enter_context(
                    closing(self.connection.prepare(self.parent_binder.template))
                )
                child_statement = stack.enter_context(
                    closing(self.connection.prepare(self.child_binder.template))
                )
                parent = BatchAccumulator(parent_statement)
                child = BatchAccumulator(child_statement)

                self._transition(EngineState.RUNNING)
                for post_index in range(workload.parent_count):
                    self.parent_binder.bind_record(parent_statement, post_for(post_index))
                    parent.add_row()
                    self.stats.parent_binds += 1

                    for comment_index in range(workload.children_per_parent):
                        comment = comment_for(
                            post_index, comment_index, workload.children_per_parent
                        )
                        self.child_binder.bind_record(child_statement, comment)
                        child.add_row()
                        self.stats.child_binds += 1

                        external_index = (post_index + 1) * comment_index
                        if self.flush_strategy.should_flush(
                            child.rows_since_flush, batch_size, external_index
                        ):
                            self._transition(EngineState.FLUSHING)
                            self._flush(parent, child)
                            self.stats.triggered_flushes += 1
                            self._transition(EngineState.RUNNING)

                self._transition(EngineState.DRAINING)
                self._flush(parent, child)
                self.stats.terminal_flushes += 1

                self.stats.parent_backend_flushes = parent.backend_flushes
                self.stats.child_backend_flushes = child.backend_flushes
        except Exception:
            self._transition(EngineState.ABORTED)
            log.debug(
                "Engine aborted",
                extra={
                    "backend": getattr(self.connection, "label", None),
                    "parent_binds": self.stats.parent_binds,
                    "child_binds": self.stats.child_binds,
                },
            )
            raise

        self._transition(EngineState.DONE)
        log.debug(
            "Engine completed",
            extra={
                "backend": self.connection.label,
                "rows": self.stats.rows,
                "flush_count": self.stats.flush_count,
            },
        )
        return self.stats


__all__ = ["BatchInsertEngine", "EngineState", "EngineStats"]
