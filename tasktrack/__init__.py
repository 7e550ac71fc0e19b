"""Personal task tracker with undo/redo, search, filtering and sorting."""

__version__ = "0.1.0"
