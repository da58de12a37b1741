"""
Admin component - moderation listing, hard delete, bulk publish and stats.
"""

from .component import AdminPostService
from .models import PostStats

__all__ = [
    "AdminPostService",
    "PostStats",
]
