"""Translate service errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from ..errors import (
    ApplyConflict,
    InsufficientDataError,
    InvalidStatusTransition,
    OptimizationInProgress,
    RemoteOptimizationUnavailable,
    TourNotFound,
    TourPlannerError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[TourPlannerError], int], ...] = (
    (TourNotFound, status.HTTP_404_NOT_FOUND),
    (ApplyConflict, status.HTTP_409_CONFLICT),
    (OptimizationInProgress, status.HTTP_409_CONFLICT),
    (InsufficientDataError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidStatusTransition, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (RemoteOptimizationUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(exc: Exception, action: str) -> HTTPException:
    """Build the HTTPException for ``exc``; unexpected errors are logged with their traceback."""
    if isinstance(exc, TourPlannerError):
        for error_type, status_code in _STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                return HTTPException(status_code=status_code, detail=exc.to_notice())
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_notice())
    if isinstance(exc, ValueError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": type(exc).__name__, "message": str(exc), "next_action": "fix_data"},
        )
    logger.exception(f"Failed to {action}: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "InternalError", "message": f"Failed to {action}: {exc}", "next_action": "retry"},
    )
