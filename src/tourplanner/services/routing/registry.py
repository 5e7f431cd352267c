"""Track the single in-flight optimization per tour."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field

from ...errors import OptimizationInProgress


@dataclass(slots=True)
class OptimizationTicket:
    tour_id: str
    token: int
    cancelled: threading.Event = field(default_factory=threading.Event)
    committed: bool = False

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()


class OptimizationRegistry:
    """At most one outstanding optimization per tour.

    A second ``begin`` for a tour that is still in flight raises
    ``OptimizationInProgress``. ``cancel`` marks the ticket so its response is
    discarded on arrival instead of applied. Once ``commit`` has accepted a ticket
    its result is delivered and ``cancel`` no longer applies to it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: dict[str, OptimizationTicket] = {}
        self._tokens = itertools.count(1)

    def begin(self, tour_id: str) -> OptimizationTicket:
        with self._lock:
            if tour_id in self._active:
                raise OptimizationInProgress(
                    f"An optimization for tour {tour_id} is already running. Wait for it to finish and retry."
                )
            ticket = OptimizationTicket(tour_id=tour_id, token=next(self._tokens))
            self._active[tour_id] = ticket
            return ticket

    def cancel(self, tour_id: str) -> bool:
        with self._lock:
            ticket = self._active.get(tour_id)
            if ticket is None or ticket.committed:
                return False
            ticket.cancelled.set()
            return True

    def commit(self, ticket: OptimizationTicket) -> bool:
        """Accept the ticket's result unless it was cancelled first."""
        with self._lock:
            if ticket.is_cancelled:
                return False
            ticket.committed = True
            return True

    def finish(self, ticket: OptimizationTicket) -> None:
        with self._lock:
            if self._active.get(ticket.tour_id) is ticket:
                del self._active[ticket.tour_id]

    def is_running(self, tour_id: str) -> bool:
        with self._lock:
            return tour_id in self._active
