"""
Slugs component - unique slug allocation backed by the slug registry.
"""

from .component import SlugAllocator
from .ports import ClockPort, SlugRegistryPort

__all__ = [
    "SlugAllocator",
    "ClockPort",
    "SlugRegistryPort",
]
