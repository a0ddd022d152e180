"""
ClimbTime Backend - Prediction Service Client
===============================================

What:  HTTP client for the external route-segmentation ("prediction")
       service that backs POST /api/proxy.
Why:   The grade page cannot call the service directly (CORS, and the
       service URL stays server-side); the proxy also smooths over the
       service's cold starts.
How:   httpx.AsyncClient wrapped in a tenacity fixed-delay retry.

Resilience Strategy:
    The service is hosted on a platform that idles it out. While it boots,
    its gateway answers 502. So:
        - retry on 502 responses and on transport errors (connect/read failures)
        - fixed delay between attempts (the boot time does not shrink with backoff)
        - forwarding an image: settings.prediction_retry_attempts (3) × 2s
        - health probe:        settings.prediction_health_retry_attempts (2) × 1s
    Any other status is returned to the caller immediately, without retrying.

Outcome mapping (see PredictionServiceError):
    2xx                         → upstream JSON passed through
    non-2xx (after retries)     → same status, upstream body in `details`
    502 after retries           → 502, "currently unavailable or starting up" message
    transport error after retries → 500 "Failed to process image"
"""

import logging
import time
from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from climbtime.config import settings
from climbtime.exceptions import PredictionServiceError

logger = logging.getLogger(__name__)

SERVICE_STARTING_MESSAGE = (
    "The prediction service is currently unavailable or starting up. "
    "Please try again in a few moments."
)


def _is_bad_gateway(response: httpx.Response) -> bool:
    return response.status_code == 502


def _last_outcome(retry_state: RetryCallState) -> httpx.Response:
    """
    Called when attempts run out: hand back the final response (a 502) or
    re-raise the final transport error, instead of tenacity's RetryError.
    """
    return retry_state.outcome.result()


class PredictionService:
    """
    Client for the prediction service.

    Constructor arguments exist for tests: an httpx.MockTransport and a
    zero delay make the retry behaviour observable without a network.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        health_retry_attempts: Optional[int] = None,
        health_retry_delay: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.prediction_service_url).rstrip("/")
        self._transport = transport
        self.timeout = timeout if timeout is not None else settings.prediction_timeout
        self.retry_attempts = retry_attempts or settings.prediction_retry_attempts
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.prediction_retry_delay
        )
        self.health_retry_attempts = (
            health_retry_attempts or settings.prediction_health_retry_attempts
        )
        self.health_retry_delay = (
            health_retry_delay
            if health_retry_delay is not None
            else settings.prediction_health_retry_delay
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request_with_retry(
        self,
        method: str,
        path: str,
        attempts: int,
        delay: float,
        **kwargs: Any,
    ) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(delay),
            retry=retry_if_exception_type(httpx.TransportError) | retry_if_result(_is_bad_gateway),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            retry_error_callback=_last_outcome,
        )
        async with self._client() as client:
            return await retrying(client.request, method, path, **kwargs)

    async def predict(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> Any:
        """
        Forward an image to POST {base_url}/predict and return its JSON.

        Raises:
            PredictionServiceError: upstream non-2xx, unreadable body, or
                transport failure after all attempts
        """
        start_time = time.perf_counter()
        files = {"file": (filename, content, content_type or "application/octet-stream")}

        try:
            response = await self._request_with_retry(
                "POST",
                "/predict",
                self.retry_attempts,
                self.retry_delay,
                files=files,
            )
        except httpx.HTTPError as e:
            logger.error(
                "Prediction service unreachable after %d attempts: %s",
                self.retry_attempts,
                str(e),
            )
            raise PredictionServiceError(
                message="Failed to process image",
                status_code=500,
                details=str(e) or type(e).__name__,
            )

        duration_ms = (time.perf_counter() - start_time) * 1000

        if not response.is_success:
            logger.error(
                "Prediction service error: %d %s after %.0fms",
                response.status_code,
                response.reason_phrase,
                duration_ms,
            )
            if response.status_code == 502:
                message = SERVICE_STARTING_MESSAGE
            else:
                message = (
                    f"Prediction service error: {response.status_code} {response.reason_phrase}"
                ).strip()
            raise PredictionServiceError(
                message=message,
                status_code=response.status_code,
                details=response.text,
            )

        try:
            data = response.json()
        except ValueError:
            logger.error("Prediction service returned a non-JSON body")
            raise PredictionServiceError(
                message="Failed to process image",
                status_code=500,
                details="Prediction service returned an invalid response",
            )

        logger.info(
            "Prediction completed for %s (%d bytes) in %.0fms",
            filename,
            len(content),
            duration_ms,
        )
        return data

    async def health_check(self) -> bool:
        """
        Probe GET {base_url}/ with the health retry budget.

        Returns: True on a 2xx answer, False on anything else.
        """
        try:
            response = await self._request_with_retry(
                "GET",
                "/",
                self.health_retry_attempts,
                self.health_retry_delay,
            )
        except httpx.HTTPError as e:
            logger.warning("Prediction service health check failed: %s", str(e))
            return False

        if not response.is_success:
            logger.warning(
                "Prediction service health check returned %d", response.status_code
            )
            return False
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
prediction_service = PredictionService()
