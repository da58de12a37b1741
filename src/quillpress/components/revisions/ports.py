"""
Revisions component ports.
"""

from quillpress.ports.clock import ClockPort
from quillpress.ports.repo import RevisionRepoPort

__all__ = ["ClockPort", "RevisionRepoPort"]
