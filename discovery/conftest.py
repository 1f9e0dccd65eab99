"""Pytest configuration for discovery tests."""

import os

import pytest

from discovery.config import get_settings
from discovery.services import event_client, handoff, results


@pytest.fixture(autouse=True)
def reset_env():
    """Reset environment variables and cached singletons between tests."""
    original = os.environ.copy()
    get_settings.cache_clear()
    yield
    os.environ.clear()
    os.environ.update(original)
    get_settings.cache_clear()
    event_client._client = None
    handoff._manager = None
    results._registry = None


def make_event_data(index: int) -> dict:
    """Raw (camelCase) payload for one generated event, as the service sends it."""
    return {
        "id": index,
        "locationName": f"Venue {index}",
        "locationAddress": f"{index} Broadway, New York",
        "eventName": f"Event {index}",
        "description": f"Description for event {index}",
        "vibes": ["chill"],
        "isPartnerVenue": index % 2 == 0,
        "priceTier": "$$",
        "estimatedDistance": f"{index}.0 miles",
        "imagePath": "/bar.jpg",
        "venueType": "venue",
        "trendingNote": None,
        "communityNote": {"notes": "Locals love it"} if index == 1 else None,
        "communityRating": 4.5,
        "reviews": [
            {"user": "Sam T.", "rating": 5, "text": "Great night out", "date": "1 day ago"}
        ],
    }


@pytest.fixture
def event_data():
    """Factory for raw event payloads."""
    return make_event_data


@pytest.fixture
def sample_events():
    """Factory for parsed GeneratedEvent lists."""
    from discovery.models import GeneratedEvent

    def _make(count: int) -> list:
        return [GeneratedEvent.model_validate(make_event_data(i)) for i in range(1, count + 1)]

    return _make


@pytest.fixture
def profile():
    """A typical onboarding profile."""
    from discovery.models import Profile

    return Profile(
        name="Jordan",
        age=27,
        location="Brooklyn, United States",
        interests=["Food", "Music"],
        sociability=5,
        vibe_tags=["chill"],
    )
