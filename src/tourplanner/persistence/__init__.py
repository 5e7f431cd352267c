"""Persistence backends for tour assignments and exports."""

from __future__ import annotations

import logging
from functools import lru_cache

from ..config import settings
from .repository import AssignmentUpdate, InMemoryTourRepository, TourRepository

logger = logging.getLogger(__name__)


@lru_cache()
def get_repository() -> TourRepository:
    """Repository selected by ``settings.repository_backend``."""
    if settings.repository_backend == "supabase":
        from ..db.supabase import get_supabase_client
        from .supabase_repository import SupabaseTourRepository

        client = get_supabase_client()
        if client is None:
            raise ValueError("Supabase backend selected but TOURPLANNER_SUPABASE_URL/KEY are not configured.")
        return SupabaseTourRepository(client)

    if settings.tour_data_file is not None:
        return InMemoryTourRepository.from_file(settings.tour_data_file)
    logger.info("Using an empty in-memory tour repository")
    return InMemoryTourRepository()


__all__ = ["AssignmentUpdate", "InMemoryTourRepository", "TourRepository", "get_repository"]
