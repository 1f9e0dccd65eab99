"""Tests for the discovery orchestrator race and hand-off."""

import asyncio

import pytest

from discovery.models import (
    DiscoveryQuery,
    DiscoveryStatus,
    EventRequestResult,
    FailureKind,
    Profile,
    SearchFilters,
)
from discovery.services.clock import LoopClock, ManualClock
from discovery.services.handoff import HANDOFF_KEY, InMemoryPageStorage, TransientHandoff
from discovery.services.orchestrator import (
    AttemptEvent,
    DiscoveryAttempt,
    DiscoveryOrchestrator,
    start_attempt,
)

FILTERS = SearchFilters(
    group_size="4",
    location="Brooklyn",
    budget="$$",
    wants_trending_signal=True,
    wants_hidden_gem_signal=False,
)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def storage():
    return InMemoryPageStorage()


@pytest.fixture
def navigations():
    return []


@pytest.fixture
def attempt(profile):
    return DiscoveryAttempt(profile, FILTERS, query="live jazz")


@pytest.fixture
def make_orchestrator(attempt, controlled_client, storage, navigations, clock):
    def _make(min_display_ms=5000, max_timeout_ms=45000):
        return DiscoveryOrchestrator(
            attempt,
            controlled_client,
            handoff=TransientHandoff(storage),
            navigate=navigations.append,
            min_display_ms=min_display_ms,
            max_timeout_ms=max_timeout_ms,
            clock=clock,
        )

    return _make


class TestActivationLatch:
    """Tests for the one-shot latch."""

    @pytest.mark.asyncio
    async def test_first_activation_starts_request(self, make_orchestrator, controlled_client, attempt, drain):
        """First activation moves the attempt in flight and fires one request."""
        orchestrator = make_orchestrator()

        assert orchestrator.activate() is True
        await drain()

        assert attempt.activated
        assert attempt.state.status is DiscoveryStatus.IN_FLIGHT
        assert controlled_client.calls == 1
        profile, filters, query = controlled_client.requests[0]
        assert filters == FILTERS
        assert query == "live jazz"
        orchestrator.teardown()

    @pytest.mark.asyncio
    async def test_repeated_activation_is_noop(self, make_orchestrator, controlled_client, drain):
        """Re-entrant activation never issues a second request."""
        orchestrator = make_orchestrator()

        assert orchestrator.activate() is True
        assert orchestrator.activate() is False
        assert orchestrator.activate() is False
        await drain()

        assert controlled_client.calls == 1
        orchestrator.teardown()

    @pytest.mark.asyncio
    async def test_two_mounts_share_one_request(
        self, make_orchestrator, controlled_client, clock, sample_events, navigations, drain
    ):
        """Two orchestrators over the same attempt make one network call."""
        first = make_orchestrator()
        second = make_orchestrator()

        both = asyncio.gather(first.run(), second.run())
        await drain()
        controlled_client.respond(EventRequestResult(events=sample_events(3)))
        await drain()
        clock.advance(5000)
        outcome_a, outcome_b = await both

        assert controlled_client.calls == 1
        assert outcome_a is outcome_b
        assert len(navigations) == 1

    @pytest.mark.asyncio
    async def test_start_attempt_builds_fresh_attempt(self, controlled_client, profile, clock, drain):
        """New inputs produce a new attempt instead of mutating the old one."""
        first = start_attempt(profile, FILTERS, "a", client=controlled_client, clock=clock)
        second = start_attempt(profile, FILTERS, "b", client=controlled_client, clock=clock)

        assert first.attempt is not second.attempt
        first.activate()
        second.activate()
        await drain()
        assert controlled_client.calls == 2
        first.teardown()
        second.teardown()


class TestMinimumDisplay:
    """Tests for the minimum perceived-loading duration."""

    @pytest.mark.asyncio
    async def test_fast_success_waits_for_minimum(
        self, make_orchestrator, controlled_client, clock, sample_events, navigations, storage, drain
    ):
        """A response at 1000ms is handed off at 5000ms, not earlier."""
        orchestrator = make_orchestrator(min_display_ms=5000)
        orchestrator.activate()
        await drain()

        clock.advance(1000)
        controlled_client.respond(EventRequestResult(events=sample_events(5)))
        await drain()

        assert orchestrator.attempt.state.status is DiscoveryStatus.SUCCEEDED
        assert navigations == []
        assert storage.get_item(HANDOFF_KEY) is None

        clock.advance(3999)
        assert navigations == []

        clock.advance(1)
        outcome = await orchestrator.run()

        assert outcome.handed_off_at_ms == 5000
        assert outcome.wrote_handoff is True
        assert outcome.timed_out is False
        assert len(outcome.events) == 5
        assert navigations == [DiscoveryQuery(query="live jazz", filters=FILTERS)]
        assert storage.get_item(HANDOFF_KEY) is not None

    @pytest.mark.asyncio
    async def test_slow_success_hands_off_on_arrival(
        self, make_orchestrator, controlled_client, clock, sample_events, navigations, drain
    ):
        """A response after the minimum is handed off immediately."""
        orchestrator = make_orchestrator(min_display_ms=5000)
        orchestrator.activate()
        await drain()

        clock.advance(8000)
        assert navigations == []
        controlled_client.respond(EventRequestResult(events=sample_events(2)))
        outcome = await orchestrator.run()

        assert outcome.handed_off_at_ms == 8000
        assert len(navigations) == 1


class TestMaximumTimeout:
    """Tests for the hard ceiling timeout."""

    @pytest.mark.asyncio
    async def test_unresolved_request_forces_navigation(
        self, make_orchestrator, controlled_client, clock, navigations, storage, drain
    ):
        """A request that never resolves still navigates at the ceiling."""
        orchestrator = make_orchestrator(max_timeout_ms=45000)
        orchestrator.activate()
        await drain()

        clock.advance(44999)
        assert navigations == []

        clock.advance(1)
        outcome = await orchestrator.run()
        await drain()

        assert outcome.timed_out is True
        assert outcome.handed_off_at_ms == 45000
        assert outcome.state.status is DiscoveryStatus.FAILED
        assert outcome.state.failure is FailureKind.TIMEOUT
        assert outcome.events == []
        assert outcome.wrote_handoff is False
        assert storage.get_item(HANDOFF_KEY) is None
        assert len(navigations) == 1
        assert controlled_client.pending.cancelled()

    @pytest.mark.asyncio
    async def test_timeout_wins_over_minimum_when_misconfigured(
        self, make_orchestrator, controlled_client, clock, sample_events, navigations, drain
    ):
        """With max < min, the timeout still decides when hand-off happens."""
        orchestrator = make_orchestrator(min_display_ms=5000, max_timeout_ms=3000)
        orchestrator.activate()
        await drain()

        clock.advance(1000)
        controlled_client.respond(EventRequestResult(events=sample_events(4)))
        await drain()
        assert navigations == []

        clock.advance(2000)
        outcome = await orchestrator.run()

        assert outcome.handed_off_at_ms == 3000
        assert outcome.state.status is DiscoveryStatus.SUCCEEDED
        assert outcome.wrote_handoff is True
        assert outcome.timed_out is False

    @pytest.mark.asyncio
    async def test_late_events_are_ignored_after_handoff(
        self, make_orchestrator, controlled_client, clock, sample_events, navigations, drain
    ):
        """Once handed off, no timer or response changes anything."""
        orchestrator = make_orchestrator()
        orchestrator.activate()
        await drain()
        controlled_client.respond(EventRequestResult(events=sample_events(2)))
        await drain()
        clock.advance(5000)
        await orchestrator.run()

        assert clock.pending == 0
        clock.advance(60000)

        assert len(navigations) == 1
        assert orchestrator.attempt.state.status is DiscoveryStatus.SUCCEEDED


class TestFailures:
    """Tests for failed requests."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failure",
        [FailureKind.NETWORK, FailureKind.HTTP, FailureKind.PARSE, FailureKind.EMPTY_RESULT],
    )
    async def test_failure_navigates_without_handoff(
        self, make_orchestrator, controlled_client, clock, navigations, storage, drain, failure
    ):
        """Failures are recorded and navigation happens with an empty slot."""
        orchestrator = make_orchestrator()
        orchestrator.activate()
        await drain()
        controlled_client.respond(EventRequestResult(failure=failure, error="nope"))
        await drain()
        clock.advance(5000)
        outcome = await orchestrator.run()

        assert outcome.state.status is DiscoveryStatus.FAILED
        assert outcome.state.failure is failure
        assert outcome.state.reason == "nope"
        assert outcome.wrote_handoff is False
        assert storage.get_item(HANDOFF_KEY) is None
        assert len(navigations) == 1

    @pytest.mark.asyncio
    async def test_ok_result_without_events_is_empty_result(
        self, make_orchestrator, controlled_client, clock, navigations, drain
    ):
        """An ok result carrying no events fails promptly instead of waiting for the timeout."""
        orchestrator = make_orchestrator(min_display_ms=1000)
        orchestrator.activate()
        await drain()
        controlled_client.respond(EventRequestResult())
        await drain()
        clock.advance(1000)
        outcome = await orchestrator.run()

        assert outcome.state.failure is FailureKind.EMPTY_RESULT
        assert outcome.timed_out is False
        assert outcome.handed_off_at_ms == 1000
        assert len(navigations) == 1

    @pytest.mark.asyncio
    async def test_failure_clears_stale_handoff(
        self, profile, controlled_client, storage, clock, sample_events, drain
    ):
        """A failed attempt never leaves an earlier attempt's events behind."""
        TransientHandoff(storage).write(sample_events(2))

        orchestrator = DiscoveryOrchestrator(
            DiscoveryAttempt(profile, FILTERS, query="quiet brunch"),
            controlled_client,
            handoff=TransientHandoff(storage),
            min_display_ms=0,
            clock=clock,
        )
        orchestrator.activate()
        assert storage.get_item(HANDOFF_KEY) is None

        await drain()
        controlled_client.respond(EventRequestResult(failure=FailureKind.HTTP, error="500"))
        outcome = await orchestrator.run()

        assert outcome.wrote_handoff is False
        assert TransientHandoff(storage).take() is None

    @pytest.mark.asyncio
    async def test_settled_without_result_is_rejected(self, make_orchestrator, drain):
        """The transition function refuses a settle event with no result."""
        orchestrator = make_orchestrator()
        orchestrator.activate()
        await drain()

        with pytest.raises(RuntimeError):
            orchestrator._dispatch(AttemptEvent.REQUEST_SETTLED)
        orchestrator.teardown()

    @pytest.mark.asyncio
    async def test_unexpected_client_error_is_a_network_failure(self, profile, clock, drain):
        """A client that raises does not escape the orchestrator."""

        class BrokenClient:
            async def create_events(self, profile, filters, search_query=None):
                raise RuntimeError("socket exploded")

        orchestrator = DiscoveryOrchestrator(
            DiscoveryAttempt(profile, FILTERS),
            BrokenClient(),
            min_display_ms=100,
            clock=clock,
        )
        orchestrator.activate()
        await drain()
        clock.advance(100)
        outcome = await orchestrator.run()

        assert outcome.state.failure is FailureKind.NETWORK
        assert "socket exploded" in outcome.state.reason

    @pytest.mark.asyncio
    async def test_navigation_error_propagates_to_run(self, profile, controlled_client, clock, sample_events, drain):
        """An error in the navigation callback surfaces from run()."""

        def navigate(_):
            raise ValueError("router gone")

        orchestrator = DiscoveryOrchestrator(
            DiscoveryAttempt(profile, FILTERS),
            controlled_client,
            navigate=navigate,
            min_display_ms=0,
            clock=clock,
        )
        orchestrator.activate()
        await drain()
        controlled_client.respond(EventRequestResult(events=sample_events(1)))
        await drain()

        with pytest.raises(ValueError, match="router gone"):
            await orchestrator.run()


class TestTeardown:
    """Tests for teardown as a cancellation token."""

    @pytest.mark.asyncio
    async def test_teardown_cancels_timers_and_request(
        self, make_orchestrator, controlled_client, clock, navigations, drain
    ):
        """After teardown nothing fires and the request is cancelled."""
        orchestrator = make_orchestrator()
        orchestrator.activate()
        await drain()

        orchestrator.teardown()
        await drain()
        clock.advance(60000)

        assert navigations == []
        assert clock.pending == 0
        assert orchestrator.attempt.request_task.cancelled()
        assert orchestrator.attempt.done.cancelled()

    @pytest.mark.asyncio
    async def test_activation_after_teardown_is_refused(self, make_orchestrator, controlled_client, drain):
        """A torn-down attempt cannot be restarted."""
        orchestrator = make_orchestrator()
        orchestrator.teardown()

        assert orchestrator.activate() is False
        with pytest.raises(RuntimeError):
            await orchestrator.run()
        await drain()
        assert controlled_client.calls == 0

    @pytest.mark.asyncio
    async def test_teardown_is_idempotent(self, make_orchestrator, drain):
        """Calling teardown twice is harmless."""
        orchestrator = make_orchestrator()
        orchestrator.activate()
        await drain()
        orchestrator.teardown()
        orchestrator.teardown()
        assert orchestrator.attempt.torn_down


class TestLoopClock:
    """Tests against the real event loop clock."""

    @pytest.mark.asyncio
    async def test_minimum_display_with_real_timers(self, immediate_client, sample_events):
        """Hand-off is not earlier than the minimum on the real loop."""
        client = immediate_client(EventRequestResult(events=sample_events(3)))
        orchestrator = DiscoveryOrchestrator(
            DiscoveryAttempt(Profile(), SearchFilters()),
            client,
            min_display_ms=50,
            max_timeout_ms=2000,
            clock=LoopClock(),
        )
        loop = asyncio.get_running_loop()
        started = loop.time()

        outcome = await orchestrator.run()

        assert (loop.time() - started) * 1000 >= 49
        assert outcome.handed_off_at_ms >= 49
        assert outcome.handed_off_at_ms < 50 + 500
        assert client.calls == 1
