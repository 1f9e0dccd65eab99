"""
Results-page loading.

The results page first looks for events handed off by the loading page. If
the slot is empty it runs its own discovery attempt (same client, same latch
discipline, no minimum display time). This is the only place the local
fallback list is used: when that attempt fails, the fallback generator fills
in, unless disabled, in which case the page shows an empty state.
"""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from discovery.config import get_settings
from discovery.models import (
    DiscoveryQuery,
    DiscoveryStatus,
    FailureKind,
    GeneratedEvent,
    Profile,
    SearchFilters,
)
from discovery.services.clock import Clock
from discovery.services.event_client import EventRequestClient
from discovery.services.fallback import generate_fallback_events
from discovery.services.handoff import TransientHandoff
from discovery.services.orchestrator import DiscoveryAttempt, DiscoveryOrchestrator

logger = logging.getLogger(__name__)

EMPTY_STATE_MESSAGE = (
    "We couldn't find any events right now. Try broadening your filters or check back soon."
)


class ResultSource(str, Enum):
    """Where the results page got its events from."""

    HANDOFF = "handoff"
    SERVICE = "service"
    FALLBACK = "fallback"
    EMPTY = "empty"


@dataclass
class LoadedResults:
    """Events for the results page plus how they were obtained."""

    events: list[GeneratedEvent] = field(default_factory=list)
    source: ResultSource = ResultSource.EMPTY
    failure: FailureKind | None = None

    @property
    def message(self) -> str | None:
        """Empty-state text, or None when there is something to show."""
        return None if self.events else EMPTY_STATE_MESSAGE


def resolve_filters(filters: SearchFilters, profile: Profile) -> SearchFilters:
    """Fill a blank filter location with the profile's city."""
    if filters.location.strip():
        return filters
    return filters.model_copy(update={"location": profile.city})


class ResultsLoader:
    """Loads events for the results page exactly once."""

    def __init__(
        self,
        client: EventRequestClient,
        handoff: TransientHandoff,
        profile: Profile,
        query: DiscoveryQuery,
        *,
        max_timeout_ms: float | None = None,
        use_fallback: bool | None = None,
        clock: Clock | None = None,
    ):
        settings = get_settings()
        self.client = client
        self.handoff = handoff
        self.profile = profile
        self.query = query
        self.max_timeout_ms = (
            settings.max_timeout_ms if max_timeout_ms is None else max_timeout_ms
        )
        self.use_fallback = (
            settings.use_fallback_events if use_fallback is None else use_fallback
        )
        self.clock = clock
        self._task: asyncio.Task[LoadedResults] | None = None

    async def load(self) -> LoadedResults:
        """Load events; repeated calls share the first call's work.

        A caller that gets cancelled (e.g. a disconnected HTTP client) does
        not cancel the shared load.
        """
        if self._task is None or self._task.cancelled():
            self._task = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._task)

    async def _load(self) -> LoadedResults:
        events = self.handoff.take()
        if events:
            logger.debug("[Results] Loaded from hand-off | events=%d", len(events))
            return LoadedResults(events=events, source=ResultSource.HANDOFF)

        logger.info("No handed-off events, running discovery from the results page")
        filters = resolve_filters(self.query.filters, self.profile)
        orchestrator = DiscoveryOrchestrator(
            DiscoveryAttempt(self.profile, filters, self.query.query),
            self.client,
            min_display_ms=0,
            max_timeout_ms=self.max_timeout_ms,
            clock=self.clock,
        )
        try:
            outcome = await orchestrator.run()
        finally:
            orchestrator.teardown()

        if outcome.state.status is DiscoveryStatus.SUCCEEDED:
            return LoadedResults(events=outcome.events, source=ResultSource.SERVICE)

        failure = outcome.state.failure
        if self.use_fallback:
            logger.warning(
                "Discovery failed (%s), using fallback events",
                failure.value if failure else "unknown",
            )
            return LoadedResults(
                events=generate_fallback_events(self.profile, filters),
                source=ResultSource.FALLBACK,
                failure=failure,
            )

        logger.warning("Discovery failed and fallback is disabled, showing empty state")
        return LoadedResults(source=ResultSource.EMPTY, failure=failure)


class ResultsLoaderRegistry:
    """Keeps one loader per browser session so paging reuses loaded results.

    A loader is replaced when the session navigates with a different query,
    or discarded when the session starts a new discovery attempt. At most
    ``max_sessions`` loaders are kept; the least recently used is evicted.
    """

    def __init__(self, max_sessions: int = 1000) -> None:
        self.max_sessions = max_sessions
        self._loaders: OrderedDict[str, tuple[DiscoveryQuery, ResultsLoader]] = OrderedDict()

    def get_or_create(
        self,
        session_id: str,
        query: DiscoveryQuery,
        factory: Callable[[], ResultsLoader],
    ) -> ResultsLoader:
        entry = self._loaders.get(session_id)
        if entry is not None and entry[0] == query:
            self._loaders.move_to_end(session_id)
            return entry[1]
        loader = factory()
        self._loaders[session_id] = (query, loader)
        self._loaders.move_to_end(session_id)
        while len(self._loaders) > self.max_sessions:
            evicted, _ = self._loaders.popitem(last=False)
            logger.debug("[Results] Evicted loader | session=%s", evicted)
        return loader

    def discard(self, session_id: str) -> bool:
        """Forget a session's loader. Returns True if one existed."""
        return self._loaders.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._loaders)


# Singleton instance
_registry: ResultsLoaderRegistry | None = None


def get_results_registry() -> ResultsLoaderRegistry:
    """Get the singleton results loader registry."""
    global _registry
    if _registry is None:
        _registry = ResultsLoaderRegistry()
    return _registry
