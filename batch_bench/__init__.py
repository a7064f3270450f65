"""
Batch Insert Benchmark - measuring how statement batching affects insert throughput.

This package drives a two-level post/comment insert workload through reusable
prepared statements and compares batching approaches:

- Batched execution (rows buffered and sent with executemany)
- Immediate execution (each row sent as soon as it is bound)
- Pluggable flush policies deciding when buffered rows are sent

Posts are always flushed before their comments so every comment's foreign key
refers to a post the backend already holds.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from batch_bench.config import Settings, get_settings
from batch_bench.domain.models import WorkloadConfig
from batch_bench.engine import (
    BatchInsertEngine,
    EngineState,
    EngineStats,
    FlushStrategy,
    ModuloFlushStrategy,
)
from batch_bench.errors import BackendError, BenchmarkError, BindError, ConfigError
from batch_bench.orchestrator import RunConfig, run_benchmark, run_benchmarks
from batch_bench.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    "WorkloadConfig",
    # Engine
    "BatchInsertEngine",
    "EngineState",
    "EngineStats",
    "FlushStrategy",
    "ModuloFlushStrategy",
    # Errors
    "BenchmarkError",
    "BackendError",
    "BindError",
    "ConfigError",
    # Orchestration
    "RunConfig",
    "run_benchmark",
    "run_benchmarks",
    # Logging
    "configure_logging",
    "get_logger",
]
