"""
Run reports, reporting sinks and the results table.

Every benchmark run produces one RunReport. Sinks receive it when the run
completes; a failed run is recorded like any other, with its error message
attached, so failures never escape the reporting boundary on their own.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, TypedDict, runtime_checkable

from rich import box
from rich.console import Console
from rich.table import Table

from batch_bench.utils.logging import get_logger

log = get_logger(__name__)


class RunReport(TypedDict, total=False):
    """
    Outcome of one benchmark run.

    `run_label`, `backend_label` and `elapsed_millis` are always present;
    counters are zero for runs that failed before completing.
    """

    run_label: str
    backend_label: str
    elapsed_millis: int
    status: str
    error: Optional[str]
    error_type: Optional[str]
    mode: str
    flush_strategy: str
    batch_size: int
    parent_rows: int
    child_rows: int
    rows: int
    flush_count: int
    backend_flushes: int
    throughput_rows_per_sec: float
    peak_rss_bytes: Optional[int]
    cpu_percent: Optional[float]
    run: int


@runtime_checkable
class ReportSink(Protocol):
    def record(self, report: RunReport) -> None:
        ...


class LoggingReportSink:
    """Log each report: elapsed time for passed runs, the failure message otherwise."""

    def record(self, report: RunReport) -> None:
        if report.get("status") == "failed":
            log.error(
                f"[RUN FAILED] {report['run_label']} for {report['backend_label']}: "
                f"{report.get('error')}",
                extra={"run_label": report["run_label"], "backend": report["backend_label"]},
            )
            return
        log.info(
            f"{report['run_label']} for {report['backend_label']} took "
            f"{report['elapsed_millis']} millis",
            extra={
                "run_label": report["run_label"],
                "backend": report["backend_label"],
                "elapsed_millis": report["elapsed_millis"],
            },
        )


class CollectingReportSink:
    """Keep reports in memory, in arrival order."""

    def __init__(self) -> None:
        self.reports: List[RunReport] = []

    def record(self, report: RunReport) -> None:
        self.reports.append(report)

    @property
    def failures(self) -> List[RunReport]:
        return [report for report in self.reports if report.get("status") == "failed"]


def print_results(results: List[Dict[str, Any]], console: Optional[Console] = None) -> None:
    """
    Render benchmark results as a rich table.

    Handles both single-run results and aggregated multi-run results.
    """
    console = console or Console()

    if not results:
        console.print("[yellow]No results to display.[/yellow]")
        return

    is_aggregated = (
        "runs" in results[0] and isinstance(results[0]["runs"], int) and results[0]["runs"] > 1
    )

    table = Table(
        title="Batch Insert Benchmark Results",
        box=box.ROUNDED,
        caption="Sorted by Throughput (descending)",
    )

    table.add_column("Run", style="cyan", no_wrap=True)
    table.add_column("Backend", style="blue")
    table.add_column("Rows", justify="right", style="magenta")
    table.add_column("Flushes", justify="right")

    if is_aggregated:
        table.add_column("Runs", justify="right", style="blue")
        table.add_column("Elapsed (ms)\n[dim](Median ± StdDev)[/dim]", justify="right", style="green")
        table.add_column("Throughput (rows/s)\n[dim](Median)[/dim]", justify="right", style="bold green")
    else:
        table.add_column("Elapsed (ms)", justify="right", style="green")
        table.add_column("Throughput (rows/s)", justify="right", style="bold green")
        table.add_column("Peak Memory (MB)", justify="right", style="yellow")
    table.add_column("Status", justify="center")

    def get_sort_key(r: Dict[str, Any]) -> float:
        if is_aggregated:
            return r["throughput_rows_per_sec"]["median"]
        return r.get("throughput_rows_per_sec", 0.0)

    for res in sorted(results, key=get_sort_key, reverse=True):
        label = res.get("run_label", "Unknown")
        backend = res.get("backend_label", "?")
        rows = f"{res.get('rows', 0):,}"
        flushes = str(res.get("flush_count", 0))

        if is_aggregated:
            elapsed = res["elapsed_millis"]
            elapsed_str = f"{elapsed['median']:.0f} ± {elapsed['stddev']:.0f}"
            throughput_str = f"{res['throughput_rows_per_sec']['median']:,.2f}"
            failed = res.get("failed_runs", 0)
            status = "[green]passed[/green]" if not failed else f"[red]{failed} failed[/red]"
            table.add_row(
                label, backend, rows, flushes, str(res["runs"]), elapsed_str, throughput_str, status
            )
        else:
            elapsed_str = str(res.get("elapsed_millis", 0))
            throughput_str = f"{res.get('throughput_rows_per_sec', 0.0):,.2f}"
            mem_mb = (res.get("peak_rss_bytes") or 0) / (1024 * 1024)
            status = (
                "[red]failed[/red]" if res.get("status") == "failed" else "[green]passed[/green]"
            )
            table.add_row(
                label, backend, rows, flushes, elapsed_str, throughput_str, f"{mem_mb:.2f}", status
            )

    console.print(table)


__all__ = [
    "CollectingReportSink",
    "LoggingReportSink",
    "ReportSink",
    "RunReport",
    "print_results",
]
