"""Map projection and viewport fitting."""

from .projection import order_markers, preview_overlay, project, route_overlay
from .viewport import fit_viewport

__all__ = ["fit_viewport", "order_markers", "preview_overlay", "project", "route_overlay"]
