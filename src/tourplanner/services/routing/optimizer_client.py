"""HTTP client for the remote tour optimization service."""

from __future__ import annotations

import logging
import time

import httpx
from pydantic import ValidationError

from ...config import settings
from ...errors import RemoteOptimizationUnavailable
from ...schemas.optimization import (
    OptimizationPreferences,
    RemoteOptimizationRequest,
    RemoteOptimizationResponse,
)

logger = logging.getLogger(__name__)


class OptimizerClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        base_url = base_url or settings.optimizer_base_url
        if not base_url:
            raise RemoteOptimizationUnavailable("Remote optimization service is not configured.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.optimizer_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.optimizer_max_retries
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.optimizer_backoff_seconds
        )

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def _wait(self, attempt: int) -> None:
        wait_time = self.backoff_seconds * (2 ** (attempt - 1))
        if wait_time > 0:
            time.sleep(wait_time)

    def optimize(self, tour_id: str, preferences: OptimizationPreferences) -> RemoteOptimizationResponse:
        """Request an optimized ordering for a tour.

        Timeouts, network errors and 5xx responses are retried with exponential backoff.
        Every failure surfaces as ``RemoteOptimizationUnavailable`` so callers can fall
        back to the local ordering.
        """
        payload = RemoteOptimizationRequest(tour_id=tour_id, preferences=preferences).model_dump(
            by_alias=True, mode="json"
        )
        url = f"{self.base_url}/optimize"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.post(url, json=payload)
                    response.raise_for_status()
                    return RemoteOptimizationResponse.model_validate(response.json())
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    attempt += 1
                    if status_code < 500 or attempt > self.max_retries:
                        raise RemoteOptimizationUnavailable(
                            f"Remote optimizer returned HTTP {status_code} for tour {tour_id}."
                        ) from e
                    logger.debug(
                        f"Optimizer returned {status_code}, retrying (attempt {attempt}/{self.max_retries})"
                    )
                    self._wait(attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Optimizer request timed out after {self.max_retries} retries: {e}")
                        raise RemoteOptimizationUnavailable(
                            f"Remote optimizer timed out for tour {tour_id}.", next_action="retry"
                        ) from e
                    logger.debug(f"Optimizer timeout, retrying (attempt {attempt}/{self.max_retries})")
                    self._wait(attempt)
                except (httpx.ConnectError, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise RemoteOptimizationUnavailable(
                            f"Failed to connect to the remote optimizer at {self.base_url}: {e}"
                        ) from e
                    logger.debug(f"Optimizer network error, retrying (attempt {attempt}/{self.max_retries}): {e}")
                    self._wait(attempt)
                except (ValidationError, ValueError) as e:
                    raise RemoteOptimizationUnavailable(
                        f"Remote optimizer returned an unreadable response for tour {tour_id}: {e}"
                    ) from e
                except httpx.HTTPError as e:
                    raise RemoteOptimizationUnavailable(f"Remote optimizer request failed: {e}") from e
        finally:
            client.close()

    def check_health(self) -> dict:
        """Probe the optimizer's health endpoint."""
        client = self._get_client()
        try:
            response = client.get(f"{self.base_url}/health")
            return {
                "status": "healthy" if response.status_code == 200 else "unhealthy",
                "base_url": self.base_url,
                "status_code": response.status_code,
            }
        except httpx.HTTPError as e:
            return {
                "status": "unreachable",
                "base_url": self.base_url,
                "error": str(e),
            }
        finally:
            client.close()
