"""API endpoints for the event discovery loading and results pages."""

import logging
import time
from typing import Any
from urllib.parse import urlencode

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from discovery.config import configure_logging, get_settings
from discovery.models import DiscoveryQuery, Profile, SearchFilters
from discovery.services import (
    DiscoveryAttempt,
    DiscoveryOrchestrator,
    ResultsCarousel,
    ResultsLoader,
    get_event_client,
    get_handoff_manager,
    get_results_registry,
)

load_dotenv()

# Configure logging from settings (uses LOG_LEVEL env var)
configure_logging()
logger = logging.getLogger(__name__)

RESULTS_PATH = "/event-results"


def results_url(navigation: DiscoveryQuery) -> str:
    """Build the results page URL for a discovery query."""
    return f"{RESULTS_PATH}?{urlencode(navigation.to_query_params())}"


def _event_payload(events: list) -> list[dict[str, Any]]:
    return [event.model_dump(by_alias=True) for event in events]


app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class DiscoverRequest(BaseModel):
    """Request body for starting discovery from the loading page."""

    session_id: str = Field(min_length=1)
    profile: Profile = Field(default_factory=Profile)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    query: str = ""


class ResultsRequest(BaseModel):
    """Request body for the results page."""

    profile: Profile = Field(default_factory=Profile)


@app.get("/")
def root():
    """Root endpoint."""
    return {"status": "ok"}


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/api/upstream/health")
async def upstream_health():
    """Check whether the event generation service is reachable."""
    available = await get_event_client().check_health()
    return {"available": available}


@app.post("/api/discover")
async def discover(request: DiscoverRequest):
    """Run discovery for the loading page.

    Waits at least the minimum display time and at most the maximum timeout,
    then hands successful results off to the session and answers with the
    results page URL. Discovery failures are reported in the body, never as
    an error status: the results page recovers on its own.
    """
    settings = get_settings()
    start_time = time.perf_counter()
    redirect: dict[str, str] = {}

    def navigate(navigation: DiscoveryQuery) -> None:
        redirect["url"] = results_url(navigation)

    # A new attempt invalidates whatever the results page loaded before
    get_results_registry().discard(request.session_id)

    orchestrator = DiscoveryOrchestrator(
        DiscoveryAttempt(request.profile, request.filters, request.query),
        get_event_client(),
        handoff=get_handoff_manager().get_handoff(request.session_id),
        navigate=navigate,
        min_display_ms=settings.min_display_ms,
        max_timeout_ms=settings.max_timeout_ms,
    )
    try:
        outcome = await orchestrator.run()
    finally:
        orchestrator.teardown()

    elapsed = time.perf_counter() - start_time
    logger.debug(
        "[Discover] Complete | session=%s status=%s duration=%.2fs",
        request.session_id,
        outcome.state.status.value,
        elapsed,
    )
    return {
        "status": outcome.state.status.value,
        "failure": outcome.state.failure.value if outcome.state.failure else None,
        "event_count": len(outcome.events),
        "handed_off": outcome.wrote_handoff,
        "timed_out": outcome.timed_out,
        "elapsed_ms": round(outcome.handed_off_at_ms),
        "redirect_url": redirect.get("url", results_url(outcome.navigation)),
    }


@app.post("/api/event-results")
async def event_results(
    request: ResultsRequest,
    session_id: str,
    query: str = "",
    people: str = "1",
    location: str = "",
    budget: str = "",
    trending: str = "false",
    gems: str = "false",
    start: int = 0,
):
    """Load the results page and return the carousel page at ``start``.

    Uses handed-off events when present, otherwise runs discovery directly
    (falling back to locally generated events). Always answers 200; an empty
    result carries an empty-state message instead.
    """
    if start < 0:
        raise HTTPException(status_code=400, detail="start must be non-negative")

    navigation = DiscoveryQuery.from_query_params(
        {
            "query": query,
            "people": people,
            "location": location,
            "budget": budget,
            "trending": trending,
            "gems": gems,
        }
    )
    loader = get_results_registry().get_or_create(
        session_id,
        navigation,
        lambda: ResultsLoader(
            get_event_client(),
            get_handoff_manager().get_handoff(session_id),
            request.profile,
            navigation,
        ),
    )
    results = await loader.load()
    get_handoff_manager().release(session_id)

    carousel = ResultsCarousel(results.events, start_index=start)
    forward = ResultsCarousel(results.events, start_index=carousel.start_index)
    backward = ResultsCarousel(results.events, start_index=carousel.start_index)

    return {
        "source": results.source.value,
        "failure": results.failure.value if results.failure else None,
        "message": results.message,
        "total": len(carousel),
        "events": _event_payload(carousel.visible()),
        "start_index": carousel.start_index,
        "page_count": carousel.page_count,
        "current_page": carousel.current_page,
        "next_start": forward.next(),
        "previous_start": backward.previous(),
    }
