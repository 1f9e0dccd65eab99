"""Data models for event discovery."""

from .discovery import (
    CarouselState,
    Direction,
    DiscoveryRequestState,
    DiscoveryStatus,
    EventRequestResult,
    FailureKind,
    InvalidTransitionError,
)
from .events import (
    CommunityNote,
    CreateEventResponse,
    EventList,
    GeneratedEvent,
    Review,
    TrendingNote,
)
from .search import DiscoveryQuery, Profile, SearchFilters

__all__ = [
    "CarouselState",
    "CommunityNote",
    "CreateEventResponse",
    "Direction",
    "DiscoveryQuery",
    "DiscoveryRequestState",
    "DiscoveryStatus",
    "EventList",
    "EventRequestResult",
    "FailureKind",
    "GeneratedEvent",
    "InvalidTransitionError",
    "Profile",
    "Review",
    "SearchFilters",
    "TrendingNote",
]
