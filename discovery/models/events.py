"""Event models shared by the generation service and the fallback generator."""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrendingNote(_WireModel):
    """Prediction-market signal attached to an event."""

    prediction: str
    notes: str


class CommunityNote(_WireModel):
    """Community hidden-gem signal attached to an event."""

    notes: str


class Review(_WireModel):
    """A short user review shown next to an event."""

    user: str
    rating: int = Field(ge=0, le=5)
    text: str
    date: str = Field(description="Relative date label, e.g. '2 days ago'")


class GeneratedEvent(_WireModel):
    """An event suggestion, produced by the service or synthesized locally."""

    id: int | None = None
    location_name: str
    location_address: str
    event_name: str
    description: str
    vibes: list[str] = Field(default_factory=list)
    is_partner_venue: bool = False
    price_tier: str
    estimated_distance: str
    image_path: str
    venue_type: str
    trending_note: TrendingNote | None = None
    community_note: CommunityNote | None = None
    community_rating: float = 0.0
    reviews: list[Review] = Field(default_factory=list)


class CreateEventResponse(_WireModel):
    """Body returned by ``POST /api/events/create``."""

    success: bool
    events: list[GeneratedEvent] = Field(default_factory=list)
    error: str | None = None


EventList = TypeAdapter(list[GeneratedEvent])
"""Adapter used to (de)serialize event lists, e.g. for the hand-off slot."""
