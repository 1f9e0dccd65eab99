"""Shared fakes for service tests."""

import asyncio

import pytest

from discovery.models import EventRequestResult


class ControlledClient:
    """Stand-in for EventRequestClient whose response the test releases."""

    def __init__(self) -> None:
        self.calls = 0
        self.requests: list[tuple] = []
        self.pending: asyncio.Future[EventRequestResult] | None = None

    async def create_events(self, profile, filters, search_query=None) -> EventRequestResult:
        self.calls += 1
        self.requests.append((profile, filters, search_query))
        self.pending = asyncio.get_running_loop().create_future()
        return await self.pending

    def respond(self, result: EventRequestResult) -> None:
        assert self.pending is not None, "no request in flight"
        self.pending.set_result(result)


class ImmediateClient:
    """Stand-in for EventRequestClient that answers at once."""

    def __init__(self, result: EventRequestResult) -> None:
        self.result = result
        self.calls = 0

    async def create_events(self, profile, filters, search_query=None) -> EventRequestResult:
        self.calls += 1
        await asyncio.sleep(0)
        return self.result


async def drain(iterations: int = 10) -> None:
    """Let pending tasks and callbacks run."""
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.fixture
def controlled_client():
    return ControlledClient()


@pytest.fixture
def immediate_client():
    """Factory for clients that answer with a fixed result."""
    return ImmediateClient


@pytest.fixture(name="drain")
def drain_fixture():
    """Coroutine that lets pending tasks and callbacks run."""
    return drain
