"""
Orchestrator for running the batch insert engine, timing it, and persisting results.

Usage (example from CLI):
    from batch_bench.orchestrator import RunConfig, run_benchmarks

    results = run_benchmarks(RunConfig(backends=["sqlite"], modes=["batched", "immediate"]))
    print(results)

Each run gets its own backend connection and statements. The schema is
(re)created before the timed region; the timer covers the engine run and the
commit of the inserted rows.

Outputs are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
import statistics
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, ContextManager, List, Literal, Optional, Sequence

from batch_bench.config import get_settings
from batch_bench.domain.models import WorkloadConfig
from batch_bench.engine.engine import BatchInsertEngine, EngineStats
from batch_bench.engine.flush import FlushStrategy, resolve_flush_strategy
from batch_bench.engine.statements import BackendConnection
from batch_bench.infrastructure.backends import ExecutionMode
from batch_bench.infrastructure.db_factory import open_backend
from batch_bench.infrastructure.schema import create_schema
from batch_bench.reporter import LoggingReportSink, ReportSink, RunReport
from batch_bench.utils.logging import get_logger
from batch_bench.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)

FailurePolicy = Literal["tolerant", "strict"]
ConnectionFactory = Callable[[], ContextManager[BackendConnection]]


@dataclass
class RunConfig:
    """
    What to run and how to record it.

    Parameters
    ----------
    backends : sequence[str] | None
        Backend names; defaults to settings.benchmark_backend.
    modes : sequence[str] | None
        Execution modes ("batched", "immediate"); defaults to settings.benchmark_mode.
    flush_strategy : str | None
        Flush policy name; defaults to settings.benchmark_flush_strategy.
    workload : WorkloadConfig | None
        Defaults to the settings' post count, comments per post and batch size.
    runs : int
        Number of measurement runs per backend/mode (for statistical aggregation).
    warmup : bool
        Whether to run each backend/mode once, unrecorded, before measuring.
    failure_policy : "tolerant" | "strict"
        tolerant records a failed run and continues; strict re-raises after recording.
    """

    backends: Optional[Sequence[str]] = None
    modes: Optional[Sequence[str]] = None
    flush_strategy: Optional[str] = None
    workload: Optional[WorkloadConfig] = None
    runs: int = 1
    warmup: bool = False
    persist: bool = True
    results_dir: Path | str = "results"
    failure_policy: FailurePolicy = "tolerant"
    init_schema: bool = True
    dsn_override: Optional[str] = None
    sqlite_path: Optional[str] = None


def default_workload() -> WorkloadConfig:
    settings = get_settings()
    return WorkloadConfig(
        parent_count=settings.benchmark_parent_count,
        children_per_parent=settings.benchmark_children_per_parent,
        batch_size=settings.benchmark_batch_size,
    )


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


def _summarize(values: List[float], decimals: int = 2) -> dict:
    return {
        "median": _round_float(statistics.median(values), decimals),
        "mean": _round_float(statistics.mean(values), decimals),
        "stddev": _round_float(statistics.stdev(values), decimals) if len(values) > 1 else 0.0,
        "min": _round_float(min(values), decimals),
        "max": _round_float(max(values), decimals),
    }


def _aggregate_runs(run_results: List[RunReport]) -> dict:
    """
    Aggregate multiple runs into statistical summary.

    Failed runs are counted but excluded from the timing statistics; if every
    run failed the statistics cover the failed runs (elapsed time until the
    failure, zero throughput).
    """
    passed = [r for r in run_results if r.get("status") != "failed"] or run_results
    first = passed[0]
    return {
        "run_label": first["run_label"],
        "backend_label": first["backend_label"],
        "elapsed_millis": _summarize([float(r["elapsed_millis"]) for r in passed], decimals=1),
        "throughput_rows_per_sec": _summarize(
            [r.get("throughput_rows_per_sec", 0.0) for r in passed]
        ),
        "rows": first.get("rows", 0),
        "flush_count": first.get("flush_count", 0),
        "failed_runs": sum(1 for r in run_results if r.get("status") == "failed"),
    }


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def _build_report(
    run_label: str,
    backend_label: str,
    workload: WorkloadConfig,
    engine_stats: Optional[EngineStats],
    profile: ProfileStats,
    error: Optional[BaseException],
) -> RunReport:
    report = RunReport(
        run_label=run_label,
        backend_label=backend_label,
        elapsed_millis=profile.elapsed_millis,
        status="failed" if error is not None else "passed",
        error=str(error) if error is not None else None,
        error_type=type(error).__name__ if error is not None else None,
        batch_size=workload.batch_size,
        peak_rss_bytes=profile.peak_rss_bytes,
        cpu_percent=_round_float(profile.cpu_percent, 1) if profile.cpu_percent else None,
    )
    if engine_stats is not None and error is None:
        report["parent_rows"] = engine_stats.parent_binds
        report["child_rows"] = engine_stats.child_binds
        report["rows"] = engine_stats.rows
        report["flush_count"] = engine_stats.flush_count
        report["backend_flushes"] = (
            engine_stats.parent_backend_flushes + engine_stats.child_backend_flushes
        )
    else:
        report.update(parent_rows=0, child_rows=0, rows=0, flush_count=0, backend_flushes=0)
    report["throughput_rows_per_sec"] = (
        _round_float(report["rows"] / profile.duration_seconds)
        if profile.duration_seconds > 0
        else 0.0
    )
    return report


def run_benchmark(
    connection_factory: ConnectionFactory,
    workload: WorkloadConfig,
    flush_strategy: FlushStrategy,
    run_label: str,
    backend_label: str,
    sink: Optional[ReportSink] = None,
    init_schema: bool = True,
    failure_policy: FailurePolicy = "tolerant",
) -> RunReport:
    """
    Execute one engine run and report its outcome.

    Any error raised while connecting, preparing the schema or running the
    engine is recorded on the report. With the tolerant policy the report is
    returned; with the strict policy the error is re-raised after the sink
    has received the report.
    """
    engine_stats: Optional[EngineStats] = None
    error: Optional[BaseException] = None

    log.info(f"[RUN START] {run_label}", extra={"run_label": run_label, "backend": backend_label})
    stats = ProfileStats(label=run_label)
    try:
        with connection_factory() as connection:
            backend_label = getattr(connection, "label", backend_label)
            if init_schema:
                create_schema(connection)
            with profile_block(run_label) as stats:
                engine_stats = BatchInsertEngine(connection, workload, flush_strategy).run()
                connection.commit()
    except Exception as exc:  # noqa: BLE001 - intentional broad catch to record failures
        log.exception(
            f"[RUN FAILED] {run_label}", extra={"run_label": run_label, "backend": backend_label}
        )
        error = exc

    report = _build_report(run_label, backend_label, workload, engine_stats, stats, error)
    report["flush_strategy"] = flush_strategy.name
    (sink or LoggingReportSink()).record(report)

    if error is not None and failure_policy == "strict":
        raise error
    return report


def _connection_factory(config: RunConfig, backend: str, mode: str) -> ConnectionFactory:
    def factory() -> ContextManager[BackendConnection]:
        return open_backend(
            backend, mode, dsn_override=config.dsn_override, sqlite_path=config.sqlite_path
        )

    return factory


def run_benchmarks(config: Optional[RunConfig] = None, sink: Optional[ReportSink] = None) -> List[dict]:
    """
    Run the workload for every backend x execution mode and optionally persist results.

    Returns
    -------
    List[dict]
        One report per backend/mode. If runs > 1, each entry is an aggregate
        (median, mean, stddev) with the individual reports under
        `individual_runs`.
    """
    config = config or RunConfig()
    settings = get_settings()
    workload = config.workload or default_workload()
    backends = list(config.backends or [settings.benchmark_backend])
    modes = [ExecutionMode.parse(m).value for m in (config.modes or [settings.benchmark_mode])]
    strategy_name = config.flush_strategy or settings.benchmark_flush_strategy
    # Resolve once up front so an unknown name fails before any connection is opened.
    resolve_flush_strategy(strategy_name)
    sink = sink or LoggingReportSink()

    total_global_runs = len(backends) * len(modes) * config.runs
    current_run = 0

    results: List[dict] = []
    for backend in backends:
        for mode in modes:
            run_label = f"{mode}/{strategy_name}(batch={workload.batch_size})"
            factory = _connection_factory(config, backend, mode)
            log.info(f"{'=' * 60}")
            log.info(f"[BENCHMARK] {backend.upper()} {run_label}", extra={"backend": backend})
            log.info(f"{'=' * 60}")

            if config.warmup:
                log.info(f"[WARMUP] Starting warmup run for {run_label}", extra={"backend": backend})
                warmup = run_benchmark(
                    factory,
                    workload,
                    resolve_flush_strategy(strategy_name),
                    run_label,
                    backend,
                    sink=_DiscardSink(),
                    init_schema=config.init_schema,
                )
                if warmup.get("status") == "failed":
                    log.warning(
                        f"[WARMUP] Failed for {run_label}",
                        extra={"backend": backend, "error": warmup.get("error")},
                    )

            run_results: List[RunReport] = []
            for run_num in range(1, config.runs + 1):
                current_run += 1
                log.info(
                    f"[RUN {current_run}/{total_global_runs}] Starting measurement for {run_label}",
                    extra={"backend": backend, "mode": mode, "run": run_num},
                )
                report = run_benchmark(
                    factory,
                    workload,
                    resolve_flush_strategy(strategy_name),
                    run_label,
                    backend,
                    sink=sink,
                    init_schema=config.init_schema,
                    failure_policy=config.failure_policy,
                )
                report["mode"] = mode
                report["run"] = run_num
                run_results.append(report)

            if config.runs > 1:
                aggregated = _aggregate_runs(run_results)
                aggregated["mode"] = mode
                aggregated["runs"] = config.runs
                aggregated["individual_runs"] = run_results
                results.append(aggregated)
                log.info(
                    f"[AGGREGATION] Results for {run_label}",
                    extra={
                        "backend": backend,
                        "runs": config.runs,
                        "median_elapsed_millis": aggregated["elapsed_millis"]["median"],
                        "median_throughput_rps": aggregated["throughput_rows_per_sec"]["median"],
                    },
                )
            else:
                results.extend(run_results)

    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "workload": {
            "parent_count": workload.parent_count,
            "children_per_parent": workload.children_per_parent,
            "batch_size": workload.batch_size,
        },
        "flush_strategy": strategy_name,
        "backends": backends,
        "modes": modes,
        "results": results,
    }

    if config.persist:
        _persist_results(payload, Path(config.results_dir))

    log.info(
        f"[ORCHESTRATOR COMPLETE] {total_global_runs} run(s) executed",
        extra={"backends": backends, "modes": modes},
    )
    return results


class _DiscardSink:
    def record(self, report: RunReport) -> None:
        del report


__all__ = [
    "RunConfig",
    "default_workload",
    "run_benchmark",
    "run_benchmarks",
]
