"""HTTP surface for the quillpress engine."""
