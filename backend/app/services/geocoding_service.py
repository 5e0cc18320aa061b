"""
PlaceShare Backend — Geocoding Service Implementation
=======================================================

What:  Concrete Geocoder speaking the Google Geocoding API wire format.
Why:   Places store coordinates produced server-side from the address; clients
       never send coordinates.
How:   One GET per lookup through a shared httpx.AsyncClient, guarded by a
       circuit breaker. No retries: a failed lookup aborts the create.
Who:   Instantiated once at import; called by PlaceService.create.

Upstream statuses:
    OK                          → first result's geometry.location
    ZERO_RESULTS / no results   → GeocodingError (address unknown; upstream healthy)
    INVALID_REQUEST             → GeocodingError (address unusable; upstream healthy)
    anything else               → GeocodingError, counted as an upstream failure
    timeout / transport / 5xx   → GeocodingError, counted as an upstream failure
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import GeocodingError, GeocoderUnavailableError
from app.schemas.place import Coordinates
from app.services.geocoder_base import Geocoder

logger = logging.getLogger(__name__)

UNRESOLVABLE_STATUSES = {"ZERO_RESULTS", "INVALID_REQUEST"}


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern for the geocoding upstream.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise GeocoderUnavailableError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Not thread-safe (plain counters). Safe for a single asyncio event
        loop, which is how uvicorn workers run this service.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 30):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns:
            True if the request can proceed (CLOSED, or HALF_OPEN after timeout).

        Raises:
            GeocoderUnavailableError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Geocoder circuit transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise GeocoderUnavailableError(recovery_time=max(remaining, 1))

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Geocoder circuit transitioning to CLOSED (upstream recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Geocoder circuit returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Geocoder circuit OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Google Geocoding Service
# ══════════════════════════════════════════════════════════════════════════

class GoogleGeocodingService(Geocoder):
    """
    Address lookup against a Google-compatible geocoding endpoint.

    Error Handling Chain:
        breaker open → GeocoderUnavailableError (no network call)
        call fails / times out → record failure → GeocodingError
        address unknown → record success → GeocodingError
        OK → record success → Coordinates
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.api_url = api_url or settings.geocoding_api_url
        self.api_key = api_key if api_key is not None else settings.geocoding_api_key
        self.timeout = timeout or settings.geocoding_timeout
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.geocoder_cb_failure_threshold,
            recovery_timeout=settings.geocoder_cb_recovery_timeout,
        )
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            "GoogleGeocodingService initialized, circuit_breaker(threshold=%d, recovery=%ds)",
            self.circuit_breaker.failure_threshold,
            self.circuit_breaker.recovery_timeout,
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def resolve(self, address: str) -> Coordinates:
        """
        Resolve an address to coordinates.

        Raises:
            GeocoderUnavailableError: circuit is open
            GeocodingError: unknown address, upstream failure or timeout
        """
        request_id = uuid.uuid4().hex[:8]
        self.circuit_breaker.can_execute()

        start_time = time.perf_counter()
        try:
            response = await self._get_client().get(
                self.api_url,
                params={"address": address, "key": self.api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            self.circuit_breaker.record_failure()
            logger.warning(
                "[%s] Geocoding timed out after %.0fms: %s",
                request_id,
                (time.perf_counter() - start_time) * 1000,
                str(e),
            )
            raise GeocodingError(
                message="Address lookup timed out, please try again.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )
        except (httpx.HTTPError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.warning("[%s] Geocoding request failed: %s", request_id, str(e))
            raise GeocodingError(
                message="Address lookup failed, please try again later.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        coordinates = self._parse(payload, request_id)
        self.circuit_breaker.record_success()

        logger.info(
            "[%s] Geocoding completed in %.0fms",
            request_id,
            (time.perf_counter() - start_time) * 1000,
        )
        return coordinates

    def _parse(self, payload: Dict[str, Any], request_id: str) -> Coordinates:
        status = payload.get("status") if isinstance(payload, dict) else None
        results = payload.get("results") if isinstance(payload, dict) else None

        if status in UNRESOLVABLE_STATUSES or (status == "OK" and not results):
            self.circuit_breaker.record_success()
            logger.info("[%s] Address could not be resolved (status=%s)", request_id, status)
            raise GeocodingError(context={"request_id": request_id, "status": status})

        if status != "OK":
            self.circuit_breaker.record_failure()
            logger.warning(
                "[%s] Geocoding upstream returned status=%s: %s",
                request_id,
                status,
                payload.get("error_message", "") if isinstance(payload, dict) else "",
            )
            raise GeocodingError(
                message="Address lookup failed, please try again later.",
                context={"request_id": request_id, "status": status},
            )

        try:
            location = results[0]["geometry"]["location"]
            return Coordinates(latitude=location["lat"], longitude=location["lng"])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.warning("[%s] Malformed geocoding payload: %s", request_id, str(e))
            raise GeocodingError(
                message="Address lookup failed, please try again later.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

    async def health_check(self) -> bool:
        return self.circuit_breaker.state != CircuitBreaker.OPEN

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()


# ── Singleton Instance ────────────────────────────────────────────────────
# The breaker's counters must be shared across requests
geocoder = GoogleGeocodingService()
