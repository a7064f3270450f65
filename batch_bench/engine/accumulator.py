"""
Per-statement batch bookkeeping.

The accumulator counts rows queued on one statement since its last flush and
guarantees the backend is never asked to execute an empty batch.
"""

from __future__ import annotations

from batch_bench.engine.statements import PreparedStatement


class BatchAccumulator:
    def __init__(self, statement: PreparedStatement) -> None:
        self.statement = statement
        self.rows_since_flush = 0
        self.rows_total = 0
        self.rows_flushed = 0
        self.backend_flushes = 0

    @property
    def label(self) -> str:
        return self.statement.template.table

    def add_row(self) -> None:
        """Queue the currently bound parameters as one row."""
        self.statement.add_row()
        self.rows_since_flush += 1
        self.rows_total += 1

    def has_pending(self) -> bool:
        return self.rows_since_flush > 0

    def flush(self) -> int:
        """
        Execute the queued rows, if any, and reset the counter.

        Returns the number of rows covered by this flush (0 when nothing was
        pending, in which case the backend is not called).
        """
        if not self.has_pending():
            return 0
        self.statement.execute_batch()
        flushed = self.rows_since_flush
        self.rows_since_flush = 0
        self.rows_flushed += flushed
        self.backend_flushes += 1
        return flushed


__all__ = ["BatchAccumulator"]
