"""
Content component ports.
"""

from quillpress.ports.clock import ClockPort
from quillpress.ports.repo import StorePort, TransactionPort
from quillpress.ports.storage import AssetStoragePort

__all__ = ["AssetStoragePort", "ClockPort", "StorePort", "TransactionPort"]
