"""
Domain package for the batch insert benchmark.

Exports the record models, the workload configuration, and the deterministic
row builders used by the engine. Keep this package focused on data definitions
and validation concerns.
"""

from batch_bench.domain.models import (
    Post,
    PostComment,
    PostDetails,
    WorkloadConfig,
    comment_for,
    post_for,
)

__all__ = [
    "Post",
    "PostComment",
    "PostDetails",
    "WorkloadConfig",
    "comment_for",
    "post_for",
]
