"""
Integration tests against a real PostgreSQL instance.

Verify that both execution modes insert every row and that the reports carry
the expected counters.

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os

import pytest

from batch_bench.domain.models import WorkloadConfig
from batch_bench.engine.engine import BatchInsertEngine
from batch_bench.errors import BackendError
from batch_bench.infrastructure.db_factory import open_backend
from batch_bench.infrastructure.schema import create_schema
from batch_bench.orchestrator import RunConfig, run_benchmarks
from batch_bench.reporter import CollectingReportSink

WORKLOAD = WorkloadConfig(parent_count=20, children_per_parent=5, batch_size=10)
MULTI_RUN_COUNT = 3

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.fixture
def require_postgres(postgres_available: bool) -> None:
    if not postgres_available:
        pytest.skip("PostgreSQL not reachable")


def _count(backend, table: str) -> int:
    with backend.conn.cursor() as cur:
        cur.execute(f"SELECT COUNT(*) FROM {table}")
        return cur.fetchone()[0]


@pytest.mark.parametrize("mode", ["batched", "immediate"])
def test_engine_inserts_every_row(require_postgres, test_dsn: str, mode: str) -> None:
    with open_backend("postgresql", mode, dsn_override=test_dsn) as backend:
        create_schema(backend)
        stats = BatchInsertEngine(backend, WORKLOAD).run()

        assert stats.rows == WORKLOAD.total_rows
        assert _count(backend, "post") == WORKLOAD.parent_count
        assert _count(backend, "post_comment") == WORKLOAD.child_count


def test_duplicate_keys_raise_backend_error(require_postgres, test_dsn: str) -> None:
    with pytest.raises(BackendError):
        with open_backend("postgresql", dsn_override=test_dsn) as backend:
            create_schema(backend)
            BatchInsertEngine(backend, WorkloadConfig(2, 1, 1)).run()
            BatchInsertEngine(backend, WorkloadConfig(2, 1, 1)).run()


@pytest.mark.slow
def test_run_benchmarks_aggregates_both_modes(require_postgres, test_dsn: str) -> None:
    sink = CollectingReportSink()

    results = run_benchmarks(
        RunConfig(
            backends=["postgresql"],
            modes=["batched", "immediate"],
            workload=WORKLOAD,
            runs=MULTI_RUN_COUNT,
            persist=False,
            dsn_override=test_dsn,
        ),
        sink=sink,
    )

    assert len(results) == 2
    assert len(sink.reports) == 2 * MULTI_RUN_COUNT
    for aggregated in results:
        assert aggregated["failed_runs"] == 0
        assert aggregated["rows"] == WORKLOAD.total_rows
        assert aggregated["elapsed_millis"]["median"] >= 0
