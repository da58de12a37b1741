"""
Content component input/output models.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from quillpress.domain.entities import Post

# --- Input Models ---


@dataclass(frozen=True)
class CreatePostInput:
    """Input for creating a post."""

    title: str
    body: str
    excerpt: str | None = None
    tags: Sequence[str] = ()
    categories: Sequence[str] = ()
    feature_image_url: str | None = None
    meta: dict[str, Any] | None = None
    status: str | None = None  # only honoured for admins requesting "published"


@dataclass(frozen=True)
class PostPatch:
    """
    Partial update of a post. None means "leave unchanged".

    ``expected_version`` makes the write conditional on the version the caller
    last read.
    """

    title: str | None = None
    body: str | None = None
    excerpt: str | None = None
    tags: Sequence[str] | None = None
    categories: Sequence[str] | None = None
    feature_image_url: str | None = None
    meta: dict[str, Any] | None = None
    status: str | None = None
    expected_version: int | None = None


# --- Output Models ---


@dataclass(frozen=True)
class PostPage:
    """One page of a post listing. ``total`` counts the whole filter."""

    page: int
    limit: int
    total: int
    items: list[Post] = field(default_factory=list)


@dataclass(frozen=True)
class BulkResult:
    matched: int
    modified: int
