"""
Exception hierarchy for the batch insert benchmark.

Configuration and binding problems are detected before any backend
interaction; backend failures are raised by the statement adapters when a
driver call fails and abort the current run.
"""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for all benchmark errors."""


class ConfigError(BenchmarkError):
    """Invalid workload or runtime configuration (e.g. non-positive batch size)."""


class BindError(BenchmarkError):
    """A row could not be bound to a statement's positional slots."""


class BackendError(BenchmarkError):
    """A statement execution or flush failed against the storage backend."""


__all__ = ["BenchmarkError", "ConfigError", "BindError", "BackendError"]
