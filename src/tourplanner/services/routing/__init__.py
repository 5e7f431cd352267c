"""Route metrics, ordering and optimization."""
