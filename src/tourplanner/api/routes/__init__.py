"""Route group exports."""

from . import health, metrics, statuses, tours

__all__ = ["health", "metrics", "statuses", "tours"]
