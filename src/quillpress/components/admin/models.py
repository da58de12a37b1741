"""
Admin component output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PostStats:
    """Post counts. ``by_status`` counts deleted posts under their status too."""

    total: int
    deleted: int
    by_status: dict[str, int] = field(default_factory=dict)
