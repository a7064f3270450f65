from __future__ import annotations

import json
import sys
from typing import List, Optional

import typer

from batch_bench.config import get_settings
from batch_bench.domain.models import WorkloadConfig
from batch_bench.engine.flush import available_flush_strategies
from batch_bench.errors import BenchmarkError
from batch_bench.infrastructure.backends import ExecutionMode
from batch_bench.infrastructure.db_factory import available_backends
from batch_bench.orchestrator import RunConfig, run_benchmarks
from batch_bench.reporter import print_results
from batch_bench.utils.logging import configure_logging

app = typer.Typer(help="Batch insert benchmark CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"backend={settings.benchmark_backend} mode={settings.benchmark_mode} "
        f"flush={settings.benchmark_flush_strategy} | "
        f"posts={settings.benchmark_parent_count} "
        f"comments_per_post={settings.benchmark_children_per_parent} "
        f"batch={settings.benchmark_batch_size}"
    )


@app.command("list")
def list_options() -> None:
    """
    List available backends, execution modes and flush strategies.
    """
    typer.echo("Backends: " + ", ".join(available_backends()))
    typer.echo("Modes: " + ", ".join(mode.value for mode in ExecutionMode))
    typer.echo("Flush strategies: " + ", ".join(available_flush_strategies()))


@app.command()
def run(
    backend: Optional[List[str]] = typer.Option(
        None, "--backend", "-b", help="Backend to run against (repeatable): postgresql, sqlite."
    ),
    mode: Optional[List[str]] = typer.Option(
        None, "--mode", "-m", help="Execution mode (repeatable): batched, immediate."
    ),
    flush: Optional[str] = typer.Option(
        None, "--flush", "-f", help="Flush strategy (modulo, row_count, drain_only)."
    ),
    parents: Optional[int] = typer.Option(None, "--posts", "-p", help="Number of posts."),
    children: Optional[int] = typer.Option(
        None, "--comments", "-c", help="Number of comments per post."
    ),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-B", help="Batch size."),
    runs: int = typer.Option(1, "--runs", "-n", min=1, help="Measurement runs per backend/mode."),
    warmup: bool = typer.Option(False, "--warmup", help="Run once before measuring."),
    persist: bool = typer.Option(True, "--persist/--no-persist", help="Write results/*.json."),
    strict: bool = typer.Option(False, "--strict", help="Stop at the first failed run."),
    table: bool = typer.Option(False, "--table", help="Print a results table instead of JSON."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON."),
) -> None:
    """
    Run the insert workload and print the per-run reports.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=json_logs)

    try:
        workload = WorkloadConfig(
            parent_count=settings.benchmark_parent_count if parents is None else parents,
            children_per_parent=(
                settings.benchmark_children_per_parent if children is None else children
            ),
            batch_size=settings.benchmark_batch_size if batch_size is None else batch_size,
        )
        config = RunConfig(
            backends=backend or None,
            modes=mode or None,
            flush_strategy=flush,
            workload=workload,
            runs=runs,
            warmup=warmup,
            persist=persist,
            failure_policy="strict" if strict else "tolerant",
        )
        typer.echo(
            f"Running posts={workload.parent_count} comments_per_post={workload.children_per_parent} "
            f"batch={workload.batch_size}.",
            err=True,
        )
        results = run_benchmarks(config)
    except BenchmarkError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    if table:
        print_results(results)
    else:
        typer.echo(json.dumps(results, indent=2))

    if any(r.get("status") == "failed" or r.get("failed_runs") for r in results):
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
