"""quillpress - content lifecycle and revision engine for a publishing backend."""

__version__ = "0.1.0"
