"""
Domain models for the batch insert benchmark.

Defines the three record kinds aligned with `infrastructure/schema.py`:
`Post` (parent), `PostComment` (child) and `PostDetails` (optional one-to-one
detail sharing the post's primary key). Relationships are carried as integer
keys only; no record points back at another object.

Also holds the workload configuration and the deterministic row builders the
engine uses to derive each row's keys from its loop indexes.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field

from batch_bench.errors import ConfigError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostComment(BaseModel):
    """
    Representation of a single row in the `post_comment` table.
    """

    id: int = Field(..., description="Client-assigned primary key.")
    post_id: int = Field(..., description="Key of the owning post.")
    review: str = Field(..., description="Comment text payload.")
    version: int = Field(0, description="Optimistic-locking version.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    def bind_values(self) -> Tuple[Any, ...]:
        """Values in `post_comment` insert slot order."""
        return (self.post_id, self.review, self.version, self.id)


class PostDetails(BaseModel):
    """
    Representation of a row in the `post_details` table.

    The identifier is copied from the owning post when the association is
    made; `post_id` is the back-reference key and is cleared on removal.
    """

    id: Optional[int] = Field(None, description="Shared primary key (owning post id).")
    created_on: datetime = Field(default_factory=_utcnow, description="Creation timestamp.")
    post_id: Optional[int] = Field(None, description="Key of the owning post.")

    model_config = {
        "validate_assignment": True,
    }


class Post(BaseModel):
    """
    Representation of a single row in the `post` table.
    """

    id: int = Field(..., description="Client-assigned primary key.")
    title: str = Field(..., description="Display label.")
    version: int = Field(0, description="Optimistic-locking version.")
    comments: List[PostComment] = Field(default_factory=list)
    details: Optional[PostDetails] = Field(None)

    model_config = {
        "validate_assignment": True,
    }

    def bind_values(self) -> Tuple[Any, ...]:
        """Values in `post` insert slot order."""
        return (self.title, self.version, self.id)

    def add_comment(self, comment_id: int, review: str) -> PostComment:
        comment = PostComment(id=comment_id, post_id=self.id, review=review)
        self.comments.append(comment)
        return comment

    def add_details(self, details: PostDetails) -> PostDetails:
        details.id = self.id
        details.post_id = self.id
        self.details = details
        return details

    def remove_details(self) -> None:
        if self.details is not None:
            self.details.post_id = None
        self.details = None


@dataclass(frozen=True)
class WorkloadConfig:
    """
    Shape of one benchmark run: `parent_count` posts, each followed by
    `children_per_parent` comments, flushed according to `batch_size`.

    The batch size is validated by the flush strategy that interprets it.
    """

    parent_count: int = 1000
    children_per_parent: int = 5
    batch_size: int = 50

    def __post_init__(self) -> None:
        if self.parent_count < 0:
            raise ConfigError(f"parent_count must be >= 0, got {self.parent_count}")
        if self.children_per_parent < 0:
            raise ConfigError(
                f"children_per_parent must be >= 0, got {self.children_per_parent}"
            )

    @property
    def child_count(self) -> int:
        return self.parent_count * self.children_per_parent

    @property
    def total_rows(self) -> int:
        return self.parent_count + self.child_count


def post_for(post_index: int) -> Post:
    """Build the post for a loop index; its key is the index itself."""
    return Post(id=post_index, title=f"Post no. {post_index}")


def comment_for(post_index: int, comment_index: int, comments_per_post: int) -> PostComment:
    """Build a comment whose key is unique across the whole workload."""
    return PostComment(
        id=comments_per_post * post_index + comment_index,
        post_id=post_index,
        review=f"Post comment {comment_index}",
    )


__all__ = [
    "Post",
    "PostComment",
    "PostDetails",
    "WorkloadConfig",
    "comment_for",
    "post_for",
]
