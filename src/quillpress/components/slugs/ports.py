"""
Slugs component ports.
"""

from quillpress.ports.clock import ClockPort
from quillpress.ports.repo import SlugRegistryPort

__all__ = ["ClockPort", "SlugRegistryPort"]
