from __future__ import annotations

import json
from contextlib import contextmanager
import time
from typing import Any, List

import pytest

from batch_bench import orchestrator
from batch_bench.domain.models import WorkloadConfig
from batch_bench.engine.flush import ModuloFlushStrategy
from batch_bench.errors import BackendError, ConfigError
from batch_bench.orchestrator import RunConfig, run_benchmark, run_benchmarks
from batch_bench.reporter import CollectingReportSink

SMALL_WORKLOAD = WorkloadConfig(parent_count=4, children_per_parent=3, batch_size=5)
MEASUREMENT_RUN_COUNT = 3


def _factory(backend: Any, opened: List[Any]):
    @contextmanager
    def factory():
        opened.append(backend)
        try:
            yield backend
            backend.commit()
        finally:
            backend.close()

    return factory


def test_run_benchmark_reports_passed_run(recording_backend) -> None:
    opened: List[Any] = []
    sink = CollectingReportSink()

    report = run_benchmark(
        _factory(recording_backend, opened),
        SMALL_WORKLOAD,
        ModuloFlushStrategy(),
        "batched/modulo(batch=5)",
        "sqlite",
        sink=sink,
    )

    assert report["status"] == "passed"
    assert report["backend_label"] == "recording"
    assert report["rows"] == SMALL_WORKLOAD.total_rows
    assert report["parent_rows"] == 4
    assert report["child_rows"] == 12
    assert report["flush_count"] >= 1
    assert report["flush_strategy"] == "modulo"
    assert isinstance(report["elapsed_millis"], int)
    assert sink.reports == [report]
    assert recording_backend.ddl, "schema should be created before the run"
    assert recording_backend.committed and recording_backend.closed


def test_run_benchmark_times_the_commit(recording_backend_cls) -> None:
    class SlowCommitBackend(recording_backend_cls):
        def commit(self) -> None:
            time.sleep(0.3)
            super().commit()

    backend = SlowCommitBackend()

    report = run_benchmark(
        _factory(backend, []),
        WorkloadConfig(parent_count=2, children_per_parent=2, batch_size=2),
        ModuloFlushStrategy(),
        "label",
        "sqlite",
        sink=CollectingReportSink(),
        init_schema=False,
    )

    assert report["status"] == "passed"
    assert backend.committed
    assert report["elapsed_millis"] >= 300


def test_run_benchmark_skips_schema_when_asked(recording_backend) -> None:
    run_benchmark(
        _factory(recording_backend, []),
        SMALL_WORKLOAD,
        ModuloFlushStrategy(),
        "label",
        "sqlite",
        sink=CollectingReportSink(),
        init_schema=False,
    )

    assert recording_backend.ddl == []


def test_run_benchmark_tolerant_records_backend_failure(recording_backend_cls) -> None:
    backend = recording_backend_cls(fail_flush_on="post_comment")
    sink = CollectingReportSink()

    report = run_benchmark(
        _factory(backend, []),
        SMALL_WORKLOAD,
        ModuloFlushStrategy(),
        "label",
        "sqlite",
        sink=sink,
    )

    assert report["status"] == "failed"
    assert report["error_type"] == "BackendError"
    assert "simulated flush failure" in report["error"]
    assert report["rows"] == 0
    assert report["flush_count"] == 0
    assert sink.failures == [report]
    assert backend.closed
    assert not backend.committed


def test_run_benchmark_strict_reraises_after_recording(recording_backend_cls) -> None:
    backend = recording_backend_cls(fail_flush_on="post")
    sink = CollectingReportSink()

    with pytest.raises(BackendError):
        run_benchmark(
            _factory(backend, []),
            SMALL_WORKLOAD,
            ModuloFlushStrategy(),
            "label",
            "sqlite",
            sink=sink,
            failure_policy="strict",
        )

    assert len(sink.failures) == 1


def test_run_benchmark_reports_invalid_batch_size(recording_backend) -> None:
    report = run_benchmark(
        _factory(recording_backend, []),
        WorkloadConfig(parent_count=2, children_per_parent=2, batch_size=0),
        ModuloFlushStrategy(),
        "label",
        "sqlite",
        sink=CollectingReportSink(),
    )

    assert report["status"] == "failed"
    assert report["error_type"] == "ConfigError"
    assert not any(event[0] == "set" for event in recording_backend.events)


def _patch_open_backend(monkeypatch, backends: List[Any], backend_cls) -> None:
    @contextmanager
    def fake_open_backend(name, mode="batched", dsn_override=None, sqlite_path=None):
        del dsn_override, sqlite_path
        backend = backend_cls()
        backend.label = f"{name}:{mode}"
        backends.append(backend)
        try:
            yield backend
        finally:
            backend.close()

    monkeypatch.setattr(orchestrator, "open_backend", fake_open_backend)


def test_run_benchmarks_covers_every_backend_and_mode(monkeypatch, recording_backend_cls) -> None:
    opened: List[Any] = []
    _patch_open_backend(monkeypatch, opened, recording_backend_cls)

    results = run_benchmarks(
        RunConfig(
            backends=["sqlite", "postgresql"],
            modes=["batched", "immediate"],
            flush_strategy="modulo",
            workload=SMALL_WORKLOAD,
            persist=False,
        ),
        sink=CollectingReportSink(),
    )

    assert len(results) == 4
    assert len(opened) == 4
    assert [r["mode"] for r in results] == ["batched", "immediate", "batched", "immediate"]
    assert results[0]["run_label"] == "batched/modulo(batch=5)"
    assert {r["backend_label"] for r in results} == {
        "sqlite:batched",
        "sqlite:immediate",
        "postgresql:batched",
        "postgresql:immediate",
    }
    assert all(r["status"] == "passed" for r in results)


def test_run_benchmarks_aggregates_repeated_runs(monkeypatch, recording_backend_cls) -> None:
    opened: List[Any] = []
    _patch_open_backend(monkeypatch, opened, recording_backend_cls)

    results = run_benchmarks(
        RunConfig(
            backends=["sqlite"],
            modes=["batched"],
            workload=SMALL_WORKLOAD,
            runs=MEASUREMENT_RUN_COUNT,
            warmup=True,
            persist=False,
        ),
        sink=CollectingReportSink(),
    )

    assert len(opened) == MEASUREMENT_RUN_COUNT + 1
    assert len(results) == 1
    aggregated = results[0]
    assert aggregated["runs"] == MEASUREMENT_RUN_COUNT
    assert aggregated["failed_runs"] == 0
    assert aggregated["rows"] == SMALL_WORKLOAD.total_rows
    assert set(aggregated["elapsed_millis"]) == {"median", "mean", "stddev", "min", "max"}
    assert [run["run"] for run in aggregated["individual_runs"]] == [1, 2, 3]


def test_run_benchmarks_counts_failed_runs(monkeypatch, recording_backend_cls) -> None:
    class FailingBackend(recording_backend_cls):
        def __init__(self) -> None:
            super().__init__(fail_flush_on="post")

    _patch_open_backend(monkeypatch, [], FailingBackend)

    results = run_benchmarks(
        RunConfig(
            backends=["sqlite"],
            modes=["batched"],
            workload=SMALL_WORKLOAD,
            runs=2,
            persist=False,
        ),
        sink=CollectingReportSink(),
    )

    assert results[0]["failed_runs"] == 2
    assert results[0]["throughput_rows_per_sec"]["median"] == 0.0
    assert results[0]["elapsed_millis"]["min"] >= 0
    assert results[0]["rows"] == 0
    for run in results[0]["individual_runs"]:
        assert run["status"] == "failed"
        assert run["rows"] == 0


def test_run_benchmarks_persists_latest_and_archive(
    monkeypatch, recording_backend_cls, tmp_path
) -> None:
    _patch_open_backend(monkeypatch, [], recording_backend_cls)

    run_benchmarks(
        RunConfig(
            backends=["sqlite"],
            modes=["batched"],
            workload=SMALL_WORKLOAD,
            results_dir=tmp_path,
        ),
        sink=CollectingReportSink(),
    )

    latest = tmp_path / "latest.json"
    assert latest.exists()
    assert len(list(tmp_path.glob("run-*.json"))) == 1
    payload = json.loads(latest.read_text(encoding="utf-8"))
    assert payload["workload"] == {
        "parent_count": 4,
        "children_per_parent": 3,
        "batch_size": 5,
    }
    assert payload["flush_strategy"] == "modulo"
    assert payload["results"][0]["rows"] == SMALL_WORKLOAD.total_rows


def test_run_benchmarks_rejects_unknown_flush_strategy(monkeypatch, recording_backend_cls) -> None:
    opened: List[Any] = []
    _patch_open_backend(monkeypatch, opened, recording_backend_cls)

    with pytest.raises(ConfigError, match="Unknown flush strategy"):
        run_benchmarks(
            RunConfig(
                backends=["sqlite"],
                flush_strategy="sometimes",
                workload=SMALL_WORKLOAD,
                persist=False,
            )
        )

    assert opened == []


def test_run_benchmarks_rejects_unknown_mode(monkeypatch, recording_backend_cls) -> None:
    _patch_open_backend(monkeypatch, [], recording_backend_cls)

    with pytest.raises(ConfigError, match="Unknown execution mode"):
        run_benchmarks(RunConfig(backends=["sqlite"], modes=["turbo"], persist=False))
