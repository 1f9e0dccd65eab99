"""Profile, filter and navigation models for event discovery."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_CITY = "New York"


class SearchFilters(BaseModel):
    """Filters chosen for one discovery attempt."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    group_size: str = Field(default="1", description="How many people are going")
    location: str = Field(default="", description="Where to look (blank = profile city)")
    budget: str = Field(default="", description="Price tier such as '$' or '$$$'")
    wants_trending_signal: bool = Field(
        default=False, description="Attach prediction-market trending notes"
    )
    wants_hidden_gem_signal: bool = Field(
        default=False, description="Attach community hidden-gem notes"
    )


class Profile(BaseModel):
    """User profile captured during onboarding. Read-only to discovery."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    age: int | None = None
    location: str = Field(default="", description="e.g. 'New York, United States'")
    phone_number: str = ""
    interests: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    sports_teams: dict[str, str] = Field(
        default_factory=dict, description="Sport name to favourite team"
    )
    food_genres: list[str] = Field(default_factory=list)
    music_genres: list[str] = Field(default_factory=list)
    sociability: int = Field(default=5, ge=1, le=10)
    vibe_tags: list[str] = Field(default_factory=list)

    @property
    def city(self) -> str:
        """City part of the location ('New York, United States' -> 'New York')."""
        if self.location:
            city = self.location.split(",")[0].strip()
            if city:
                return city
        return DEFAULT_CITY

    def to_request_payload(self) -> dict[str, Any]:
        """Transform the profile into the shape the generation service expects."""
        return {
            "name": self.name,
            "phoneNumber": self.phone_number,
            "city": self.city,
            "interests": list(self.interests),
            "goals": list(self.goals),
            "sportsTeams": dict(self.sports_teams),
            "foodGenres": list(self.food_genres),
            "musicGenres": list(self.music_genres),
            "sociability": self.sociability,
            "vibeTags": list(self.vibe_tags),
            "age": self.age,
        }


def _parse_flag(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


class DiscoveryQuery(BaseModel):
    """Context carried by navigation from the loading page to the results page.

    Holds everything the results page needs to re-run discovery when the
    hand-off slot turns out to be empty.
    """

    model_config = ConfigDict(frozen=True)

    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)

    def to_query_params(self) -> dict[str, str]:
        """Encode as URL query parameters."""
        return {
            "query": self.query,
            "people": self.filters.group_size,
            "location": self.filters.location,
            "budget": self.filters.budget,
            "trending": "true" if self.filters.wants_trending_signal else "false",
            "gems": "true" if self.filters.wants_hidden_gem_signal else "false",
        }

    @classmethod
    def from_query_params(cls, params: dict[str, str | None]) -> "DiscoveryQuery":
        """Decode URL query parameters, filling defaults for missing values."""
        filters = SearchFilters(
            group_size=params.get("people") or "1",
            location=params.get("location") or "",
            budget=params.get("budget") or "",
            wants_trending_signal=_parse_flag(params.get("trending")),
            wants_hidden_gem_signal=_parse_flag(params.get("gems")),
        )
        return cls(query=params.get("query") or "", filters=filters)
