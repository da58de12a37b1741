"""
Content component - post lifecycle, edits with revisions, and the read surface.
"""

from .component import ContentService
from .models import BulkResult, CreatePostInput, PostPage, PostPatch
from .ports import AssetStoragePort, ClockPort, StorePort, TransactionPort

__all__ = [
    "ContentService",
    # Models
    "BulkResult",
    "CreatePostInput",
    "PostPage",
    "PostPatch",
    # Ports
    "AssetStoragePort",
    "ClockPort",
    "StorePort",
    "TransactionPort",
]
