"""Error types surfaced to dashboard users.

Every error carries a human readable message and the next action the user is
expected to take, so the API layer can render a notice instead of failing.
"""

from __future__ import annotations

from typing import Literal

NextAction = Literal["retry", "rerun", "accept_fallback", "fix_data", "none"]


class TourPlannerError(Exception):
    """Base class for tour planning errors."""

    next_action: NextAction = "none"

    def __init__(self, message: str, *, next_action: NextAction | None = None) -> None:
        super().__init__(message)
        self.message = message
        if next_action is not None:
            self.next_action = next_action

    def to_notice(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "next_action": self.next_action,
        }


class InsufficientDataError(TourPlannerError, ValueError):
    """Too few eligible assignments to attempt optimization."""

    next_action = "fix_data"


class RemoteOptimizationUnavailable(TourPlannerError, ConnectionError):
    """The remote optimization service failed, timed out or is not configured."""

    next_action = "accept_fallback"


class InvalidCoordinateError(TourPlannerError):
    """An assignment has no usable coordinate.

    Soft error: metrics and viewport code record it as a notice and carry on.
    """

    next_action = "fix_data"

    def __init__(self, message: str, *, assignment_id: str | None = None) -> None:
        super().__init__(message)
        self.assignment_id = assignment_id

    def to_notice(self) -> dict:
        notice = super().to_notice()
        notice["assignment_id"] = self.assignment_id
        return notice


class ApplyConflict(TourPlannerError):
    """An optimization result no longer matches the tour's current assignments."""

    next_action = "rerun"


class OptimizationInProgress(TourPlannerError):
    """An optimization request for the same tour is already in flight."""

    next_action = "retry"


class InvalidStatusTransition(TourPlannerError, ValueError):
    """A status change that the status model does not allow."""


class TourNotFound(TourPlannerError, LookupError):
    """No assignments exist for the requested tour."""
