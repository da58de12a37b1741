"""
Revisions component - append-only content snapshots.
"""

from .component import RevisionStore
from .ports import ClockPort, RevisionRepoPort

__all__ = [
    "RevisionStore",
    "ClockPort",
    "RevisionRepoPort",
]
