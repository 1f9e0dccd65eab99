"""
Services for the event discovery flow.

Loading page::

    from discovery.services import (
        DiscoveryAttempt,
        DiscoveryOrchestrator,
        get_event_client,
        get_handoff_manager,
    )

    attempt = DiscoveryAttempt(profile, filters, query="live jazz")
    orchestrator = DiscoveryOrchestrator(
        attempt,
        get_event_client(),
        handoff=get_handoff_manager().get_handoff(session_id),
        navigate=redirect_to_results,
    )
    outcome = await orchestrator.run()

Results page::

    from discovery.services import ResultsCarousel, ResultsLoader

    loader = ResultsLoader(client, handoff, profile, DiscoveryQuery.from_query_params(params))
    results = await loader.load()
    carousel = ResultsCarousel(results.events)

Available Services
------------------
- EventRequestClient: single-attempt client for the generation service
- generate_fallback_events: deterministic local suggestions
- DiscoveryOrchestrator, DiscoveryAttempt: paced discovery with hand-off
- TransientHandoff, HandoffStoreManager: page-scoped hand-off slot
- ResultsLoader: hand-off consumption with retry and fallback
- ResultsCarousel: two-at-a-time pagination
- LoopClock, ManualClock: real and virtual timer sources
"""

from .carousel import ResultsCarousel
from .clock import Clock, LoopClock, ManualClock
from .event_client import EventRequestClient, build_request_body, get_event_client
from .fallback import generate_fallback_events
from .handoff import (
    HANDOFF_KEY,
    HandoffAlreadyWrittenError,
    HandoffStoreManager,
    InMemoryPageStorage,
    PageStorage,
    SQLitePageStorage,
    TransientHandoff,
    get_handoff_manager,
    init_handoff_manager,
)
from .orchestrator import (
    AttemptEvent,
    DiscoveryAttempt,
    DiscoveryOrchestrator,
    DiscoveryOutcome,
    start_attempt,
)
from .results import (
    LoadedResults,
    ResultSource,
    ResultsLoader,
    ResultsLoaderRegistry,
    get_results_registry,
    resolve_filters,
)

__all__ = [
    "ResultsCarousel",
    "Clock",
    "LoopClock",
    "ManualClock",
    "EventRequestClient",
    "build_request_body",
    "get_event_client",
    "generate_fallback_events",
    "HANDOFF_KEY",
    "HandoffAlreadyWrittenError",
    "HandoffStoreManager",
    "InMemoryPageStorage",
    "PageStorage",
    "SQLitePageStorage",
    "TransientHandoff",
    "get_handoff_manager",
    "init_handoff_manager",
    "AttemptEvent",
    "DiscoveryAttempt",
    "DiscoveryOrchestrator",
    "DiscoveryOutcome",
    "start_attempt",
    "LoadedResults",
    "ResultSource",
    "ResultsLoader",
    "ResultsLoaderRegistry",
    "get_results_registry",
    "resolve_filters",
]
