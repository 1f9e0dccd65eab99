#!/usr/bin/env python3
"""
CLI for running event discovery outside the web app.

Usage:
    # Full loading -> results flow against the generation service
    python -m discovery.cli.discover run --profile profile.json --budget '$$' --trending

    # Local fallback list only (no network)
    python -m discovery.cli.discover fallback --profile profile.json --gems

    # Check the generation service
    python -m discovery.cli.discover health
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from discovery.config import configure_logging, get_settings
from discovery.models import DiscoveryQuery, GeneratedEvent, Profile, SearchFilters
from discovery.services import (
    DiscoveryAttempt,
    DiscoveryOrchestrator,
    EventRequestClient,
    InMemoryPageStorage,
    ResultsLoader,
    TransientHandoff,
    generate_fallback_events,
)

logger = logging.getLogger(__name__)


def load_profile(path: str | None) -> Profile:
    """Load a profile from a JSON file (camelCase or snake_case keys)."""
    if not path:
        return Profile()
    try:
        return Profile.model_validate_json(Path(path).read_text())
    except (OSError, ValidationError) as e:
        logger.error("Could not load profile from %s: %s", path, e)
        sys.exit(1)


def filters_from_args(args: argparse.Namespace) -> SearchFilters:
    return SearchFilters(
        group_size=args.people,
        location=args.location,
        budget=args.budget,
        wants_trending_signal=args.trending,
        wants_hidden_gem_signal=args.gems,
    )


def print_events(events: list[GeneratedEvent], output_file: str | None = None) -> None:
    """Print events as JSON, to stdout or a file."""
    output = json.dumps([e.model_dump(by_alias=True) for e in events], indent=2)
    if output_file:
        Path(output_file).write_text(output)
        logger.info("Wrote %d events to %s", len(events), output_file)
    else:
        print(output)


async def run_discovery(
    profile: Profile,
    filters: SearchFilters,
    query: str,
    min_display_ms: int,
    output_file: str | None = None,
) -> None:
    """Run the loading page flow, then the results page flow."""
    client = EventRequestClient()
    handoff_storage = InMemoryPageStorage()
    navigation: list[DiscoveryQuery] = []

    try:
        orchestrator = DiscoveryOrchestrator(
            DiscoveryAttempt(profile, filters, query),
            client,
            handoff=TransientHandoff(handoff_storage),
            navigate=navigation.append,
            min_display_ms=min_display_ms,
        )
        outcome = await orchestrator.run()
        logger.info(
            "Discovery %s after %.0fms (failure=%s)",
            outcome.state.status.value,
            outcome.handed_off_at_ms,
            outcome.state.failure.value if outcome.state.failure else None,
        )

        loader = ResultsLoader(
            client,
            TransientHandoff(handoff_storage),
            profile,
            navigation[0] if navigation else outcome.navigation,
        )
        results = await loader.load()
        logger.info("Results source: %s", results.source.value)
        if not results.events:
            print(results.message)
            return
        print_events(results.events, output_file)
    finally:
        await client.close()


async def check_health() -> None:
    """Probe the generation service."""
    client = EventRequestClient()
    try:
        available = await client.check_health()
    finally:
        await client.close()
    print(json.dumps({"url": client.base_url, "available": available}))
    if not available:
        sys.exit(1)


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--profile", help="Path to a profile JSON file")
    parser.add_argument("--people", default="1", help="Group size (default: 1)")
    parser.add_argument("--location", default="", help="Location (default: profile city)")
    parser.add_argument("--budget", default="", help="Budget tier, e.g. '$$'")
    parser.add_argument(
        "--trending", action="store_true", help="Include trending signal notes"
    )
    parser.add_argument(
        "--gems", action="store_true", help="Include hidden-gem community notes"
    )
    parser.add_argument("-o", "--output", help="Output file path (default: stdout)")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Event discovery CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run = subparsers.add_parser("run", help="Run discovery against the service")
    _add_filter_arguments(run)
    run.add_argument("--query", default="", help="Free-text search query")
    run.add_argument(
        "--min-display-ms",
        type=int,
        default=0,
        help="Minimum loading time to honour (default: 0)",
    )

    fallback = subparsers.add_parser(
        "fallback",
        help="Print the local fallback events (no network)",
    )
    _add_filter_arguments(fallback)

    subparsers.add_parser("health", help="Check the generation service")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(get_settings())

    if args.command == "run":
        asyncio.run(
            run_discovery(
                profile=load_profile(args.profile),
                filters=filters_from_args(args),
                query=args.query,
                min_display_ms=args.min_display_ms,
                output_file=args.output,
            )
        )
    elif args.command == "fallback":
        print_events(
            generate_fallback_events(load_profile(args.profile), filters_from_args(args)),
            args.output,
        )
    elif args.command == "health":
        asyncio.run(check_health())


if __name__ == "__main__":
    main()
