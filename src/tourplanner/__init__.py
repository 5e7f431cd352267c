"""Tour route planning service."""

__version__ = "0.1.0"
