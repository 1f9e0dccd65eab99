"""
Client for the event generation service.

Sends a profile, filters and free-text query to ``POST /api/events/create``
and normalizes every outcome into an ``EventRequestResult``. Exactly one
attempt is made per call; there are no retries. The discovery orchestrator
owns timing and relies on this call never raising for transport, status or
payload problems.
"""

import logging
import time

import httpx
from pydantic import ValidationError

from discovery.config import get_settings
from discovery.models import (
    CreateEventResponse,
    EventRequestResult,
    FailureKind,
    Profile,
    SearchFilters,
)

logger = logging.getLogger(__name__)

CREATE_EVENTS_PATH = "/api/events/create"
HEALTH_PATH = "/health"


def build_request_body(
    profile: Profile, filters: SearchFilters, search_query: str | None = None
) -> dict:
    """Build the JSON body for a generation request."""
    body: dict = {
        "profile": profile.to_request_payload(),
        "filters": filters.model_dump(by_alias=True),
    }
    if search_query:
        body["searchQuery"] = search_query
    return body


class EventRequestClient:
    """Async client for the event generation service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.event_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def create_events(
        self,
        profile: Profile,
        filters: SearchFilters,
        search_query: str | None = None,
    ) -> EventRequestResult:
        """
        Ask the service for personalized events.

        Args:
            profile: Onboarding profile, sent in its transformed shape
            filters: Filters for this attempt
            search_query: Optional free-text query

        Returns:
            EventRequestResult with events, or with the failure kind set
        """
        client = await self._get_client()
        body = build_request_body(profile, filters, search_query)

        logger.debug(
            "[EventAPI] Starting request | url=%s%s city=%s budget=%s",
            self.base_url,
            CREATE_EVENTS_PATH,
            body["profile"]["city"],
            filters.budget,
        )
        start_time = time.perf_counter()

        try:
            response = await client.post(CREATE_EVENTS_PATH, json=body)
        except httpx.TransportError as e:
            logger.warning("Event generation service unreachable: %s", e)
            return EventRequestResult(failure=FailureKind.NETWORK, error=str(e) or type(e).__name__)

        elapsed = time.perf_counter() - start_time

        if not response.is_success:
            logger.warning(
                "Event generation service returned %d: %s",
                response.status_code,
                response.text[:200],
            )
            return EventRequestResult(
                failure=FailureKind.HTTP,
                error=f"API returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            payload = CreateEventResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.warning("Could not parse event generation response: %s", e)
            return EventRequestResult(
                failure=FailureKind.PARSE,
                error="Response body is not a valid event list",
                status_code=response.status_code,
            )

        if not payload.success:
            logger.warning("Event generation reported failure: %s", payload.error)
            return EventRequestResult(
                failure=FailureKind.PARSE,
                error=payload.error or "Service reported failure",
                status_code=response.status_code,
            )

        if not payload.events:
            logger.debug("[EventAPI] No events returned | duration=%.2fs", elapsed)
            return EventRequestResult(
                failure=FailureKind.EMPTY_RESULT,
                error="Service returned no events",
                status_code=response.status_code,
            )

        logger.debug(
            "[EventAPI] Complete | events=%d duration=%.2fs",
            len(payload.events),
            elapsed,
        )
        return EventRequestResult(events=payload.events, status_code=response.status_code)

    async def check_health(self) -> bool:
        """Check if the generation service is reachable and healthy."""
        client = await self._get_client()
        try:
            response = await client.get(HEALTH_PATH)
        except httpx.TransportError as e:
            logger.debug("[EventAPI] Health check failed: %s", e)
            return False
        return response.is_success


# Singleton instance
_client: EventRequestClient | None = None


def get_event_client() -> EventRequestClient:
    """Get the singleton event generation client."""
    global _client
    if _client is None:
        _client = EventRequestClient()
    return _client
