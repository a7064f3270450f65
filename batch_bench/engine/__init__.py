"""
Engine package for the batch insert benchmark.

Re-exports the statement templates and protocols, the binder, accumulator,
flush policies and the execution engine so downstream code can import from
`batch_bench.engine` directly.
"""

from batch_bench.engine.accumulator import BatchAccumulator
from batch_bench.engine.binder import ParameterBinder
from batch_bench.engine.engine import BatchInsertEngine, EngineState, EngineStats
from batch_bench.engine.flush import (
    DrainOnlyFlushStrategy,
    FlushStrategy,
    ModuloFlushStrategy,
    RowCountFlushStrategy,
    available_flush_strategies,
    resolve_flush_strategy,
)
from batch_bench.engine.statements import (
    INSERT_POST,
    INSERT_POST_COMMENT,
    BackendConnection,
    PreparedStatement,
    StatementTemplate,
)

__all__ = [
    # Statements
    "INSERT_POST",
    "INSERT_POST_COMMENT",
    "BackendConnection",
    "PreparedStatement",
    "StatementTemplate",
    # Building blocks
    "BatchAccumulator",
    "ParameterBinder",
    # Flush policies
    "DrainOnlyFlushStrategy",
    "FlushStrategy",
    "ModuloFlushStrategy",
    "RowCountFlushStrategy",
    "available_flush_strategies",
    "resolve_flush_strategy",
    # Engine
    "BatchInsertEngine",
    "EngineState",
    "EngineStats",
]
