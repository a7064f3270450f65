"""
Schema management script for the batch insert benchmark.

Creates or drops the `post`, `post_comment` and `post_details` tables on the
configured backend. The benchmark CLI recreates the schema before each run;
this script is for preparing or cleaning a database by hand.
"""

from __future__ import annotations

from typing import Optional

import typer

from batch_bench.infrastructure.db_factory import open_backend
from batch_bench.infrastructure.schema import TABLES, create_schema, drop_schema

app = typer.Typer(help="Create or drop the benchmark schema.")


@app.command()
def create(
    backend: str = typer.Option("postgresql", "--backend", "-b", help="postgresql or sqlite."),
    dsn: Optional[str] = typer.Option(None, "--dsn", help="Override DSN built from settings."),
    sqlite_path: Optional[str] = typer.Option(None, "--sqlite-path", help="sqlite database file."),
    keep_existing: bool = typer.Option(
        False, "--keep-existing", help="Do not drop existing tables first."
    ),
) -> None:
    """Create the benchmark tables."""
    with open_backend(backend, dsn_override=dsn, sqlite_path=sqlite_path) as conn:
        create_schema(conn, drop_existing=not keep_existing)
    typer.echo(f"Created tables on {backend}: {', '.join(TABLES)}")


@app.command()
def drop(
    backend: str = typer.Option("postgresql", "--backend", "-b", help="postgresql or sqlite."),
    dsn: Optional[str] = typer.Option(None, "--dsn", help="Override DSN built from settings."),
    sqlite_path: Optional[str] = typer.Option(None, "--sqlite-path", help="sqlite database file."),
) -> None:
    """Drop the benchmark tables."""
    with open_backend(backend, dsn_override=dsn, sqlite_path=sqlite_path) as conn:
        drop_schema(conn)
    typer.echo(f"Dropped tables on {backend}: {', '.join(TABLES)}")


if __name__ == "__main__":
    app()
