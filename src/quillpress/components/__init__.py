"""Engine components: slug allocation, revisions, content lifecycle, admin operations."""
