"""Route, map and export services."""
