"""
Local fallback event generation.

Synthesizes a deterministic, profile-derived list of suggestions for when the
generation service is unavailable or returns nothing. Mirrors the service's
venue mix closely enough that the results page cannot tell the difference in
shape, only in content.
"""

import logging

from discovery.models import (
    CommunityNote,
    GeneratedEvent,
    Profile,
    Review,
    SearchFilters,
    TrendingNote,
)

logger = logging.getLogger(__name__)

DEFAULT_BUDGET = "$$"


def _resolve_city(profile: Profile, filters: SearchFilters) -> str:
    """Filter location wins; otherwise the profile's city."""
    location = filters.location.strip()
    return location or profile.city


def _first_team(profile: Profile) -> str | None:
    for team in profile.sports_teams.values():
        if team and team.strip():
            return team.strip()
    return None


def _sports_event(
    profile: Profile, filters: SearchFilters, city: str, budget: str
) -> GeneratedEvent:
    team = _first_team(profile)
    return GeneratedEvent(
        id=1,
        location_name="Barclays Center Sports Bar",
        location_address=f"123 Main St, {city}",
        event_name=f"Watch {team or 'Game Night'}",
        description=(
            f"The premier destination for {team or 'sports'} fans. Expect "
            "passionate crowds and great energy on game night."
        ),
        vibes=["energetic", "sports_fan", "social_butterfly"],
        is_partner_venue=True,
        price_tier=budget,
        estimated_distance="0.5 miles",
        image_path="/bar.jpg",
        venue_type="sports_bar",
        trending_note=TrendingNote(
            prediction=f"{team or 'Local team'} game",
            notes="Prediction markets show significant activity for tonight's matchup",
        )
        if filters.wants_trending_signal
        else None,
        community_note=CommunityNote(
            notes="Locals consistently recommend this spot as a hidden gem for game-day crowds",
        )
        if filters.wants_hidden_gem_signal
        else None,
        community_rating=4.6,
        reviews=[
            Review(user="Alex M.", rating=5, text="Amazing atmosphere! The staff is super friendly.", date="2 days ago"),
            Review(user="Sarah K.", rating=5, text="Best sports bar in the area. Highly recommend!", date="1 week ago"),
        ],
    )


def _restaurant_event(filters: SearchFilters, city: str, budget: str) -> GeneratedEvent:
    return GeneratedEvent(
        id=2,
        location_name="The Local Eatery",
        location_address=f"456 Oak Ave, {city}",
        event_name="Culinary Discovery Night",
        description=(
            "A neighborhood favorite known for innovative cuisine. Perfect for "
            "intimate dinners or group celebrations."
        ),
        vibes=["foodie", "chill", "romantic"],
        is_partner_venue=False,
        price_tier=budget,
        estimated_distance="1.2 miles",
        image_path="/downtownbargrill.jpg",
        venue_type="restaurant",
        community_note=CommunityNote(
            notes="Frequently mentioned as an underrated culinary destination",
        )
        if filters.wants_hidden_gem_signal
        else None,
        community_rating=4.8,
        reviews=[
            Review(user="Emma L.", rating=5, text="Incredible food and service! Perfect atmosphere.", date="3 days ago"),
        ],
    )


def _nightlife_event(city: str) -> GeneratedEvent:
    return GeneratedEvent(
        id=3,
        location_name="Midnight Lounge",
        location_address=f"789 Elm St, {city}",
        event_name="Evening Social",
        description=(
            "An upscale cocktail lounge with an electric atmosphere. Expert "
            "mixologists craft signature drinks."
        ),
        vibes=["energetic", "night_owl", "social_butterfly"],
        is_partner_venue=True,
        price_tier="$$$",
        estimated_distance="0.8 miles",
        image_path="/midnight-lounge.jpg",
        venue_type="bar_lounge",
        community_rating=4.7,
        reviews=[
            Review(user="Jessica P.", rating=5, text="Love this place! Met so many cool people here.", date="1 day ago"),
        ],
    )


def _activity_event(filters: SearchFilters, city: str) -> GeneratedEvent:
    return GeneratedEvent(
        id=4,
        location_name="Creative Pottery Studio",
        location_address=f"321 Art Lane, {city}",
        event_name="Pottery & Wine Evening",
        description=(
            "Discover the art of ceramics in a welcoming studio. Instructors "
            "guide you while you connect with fellow creatives."
        ),
        vibes=["chill", "intellectual", "introvert_friendly"],
        is_partner_venue=True,
        price_tier="$$",
        estimated_distance="0.7 miles",
        image_path="/potteryclass.jpg",
        venue_type="activity_center",
        community_note=CommunityNote(
            notes="The community consistently recommends this studio for its instruction",
        )
        if filters.wants_hidden_gem_signal
        else None,
        community_rating=4.7,
        reviews=[
            Review(user="Maya K.", rating=5, text="Such a fun experience! Met some great people.", date="4 days ago"),
        ],
    )


def _social_event(city: str, budget: str) -> GeneratedEvent:
    return GeneratedEvent(
        id=5,
        location_name="The Social Spot",
        location_address=f"555 Community Blvd, {city}",
        event_name="Casual Meetup",
        description="A versatile social space designed for connection. Adapts to your vibe.",
        vibes=["chill", "social_butterfly", "adventurous"],
        is_partner_venue=False,
        price_tier=budget,
        estimated_distance="1.0 miles",
        image_path="/bar.jpg",
        venue_type="venue",
        community_rating=4.5,
        reviews=[
            Review(user="Taylor S.", rating=4, text="Nice place with good vibes!", date="1 week ago"),
        ],
    )


def generate_fallback_events(
    profile: Profile, filters: SearchFilters
) -> list[GeneratedEvent]:
    """
    Build the fallback suggestion list for a profile and filter set.

    Pure and deterministic: identical inputs always yield an identical
    ordered list. Each rule is evaluated independently:

    - sports team configured or "Sports" interest -> sports bar
    - "Food" interest -> restaurant
    - "Nightlife" interest or sociability >= 7 -> lounge
    - always an activity venue and a general social venue

    Args:
        profile: Onboarding profile (read-only)
        filters: Filters for the discovery attempt

    Returns:
        Between two and five events, never empty
    """
    budget = filters.budget.strip() or DEFAULT_BUDGET
    city = _resolve_city(profile, filters)
    events: list[GeneratedEvent] = []

    if _first_team(profile) or "Sports" in profile.interests:
        events.append(_sports_event(profile, filters, city, budget))

    if "Food" in profile.interests:
        events.append(_restaurant_event(filters, city, budget))

    if "Nightlife" in profile.interests or profile.sociability >= 7:
        events.append(_nightlife_event(city))

    events.append(_activity_event(filters, city))
    events.append(_social_event(city, budget))

    logger.debug(
        "[Fallback] Generated events | count=%d city=%s budget=%s",
        len(events),
        city,
        budget,
    )
    return events
