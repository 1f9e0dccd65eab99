"""
Discovery orchestrator: one request, paced for the loading screen.

The orchestrator drives a single discovery attempt to its hand-off:

1. Activation flips a one-shot latch on the attempt, arms the
   minimum-display timer and the maximum timeout (both keyed to attempt
   start) and fires exactly one generation request.
2. Three events race: REQUEST_SETTLED, MIN_ELAPSED and MAX_ELAPSED. They are
   all fed into ``_dispatch``, the single place state changes.
3. Hand-off happens once the request has settled and the minimum display
   time has passed, or immediately when the maximum timeout fires, whichever
   comes first. Timeout always wins, even when it is configured shorter than
   the minimum display time.
4. Hand-off writes successful events into the transient slot (failures write
   nothing, the results page retries on its own) and triggers navigation
   with the discovery query.

Re-entrant activation (a second mount sharing the same ``DiscoveryAttempt``)
never issues another request; it just awaits the same outcome.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from discovery.config import get_settings
from discovery.models import (
    DiscoveryQuery,
    DiscoveryRequestState,
    DiscoveryStatus,
    EventRequestResult,
    FailureKind,
    GeneratedEvent,
    Profile,
    SearchFilters,
)
from discovery.services.clock import Clock, LoopClock, TimerHandle
from discovery.services.event_client import EventRequestClient
from discovery.services.handoff import TransientHandoff

logger = logging.getLogger(__name__)

NavigateFn = Callable[[DiscoveryQuery], None]


class AttemptEvent(str, Enum):
    """Inputs to the attempt state machine."""

    REQUEST_SETTLED = "request_settled"
    MIN_ELAPSED = "min_elapsed"
    MAX_ELAPSED = "max_elapsed"


@dataclass
class DiscoveryOutcome:
    """What the loading page ended up doing for an attempt."""

    state: DiscoveryRequestState
    navigation: DiscoveryQuery
    handed_off_at_ms: float
    wrote_handoff: bool
    timed_out: bool

    @property
    def events(self) -> list[GeneratedEvent]:
        return self.state.events


@dataclass
class DiscoveryAttempt:
    """Per-attempt state: inputs, request state, latch and pending work.

    One instance per (profile, filters, query) tuple. New inputs mean a new
    attempt; an attempt is never reused once handed off or torn down.
    """

    profile: Profile
    filters: SearchFilters
    query: str = ""
    state: DiscoveryRequestState = field(default_factory=DiscoveryRequestState)
    started_at_ms: float | None = None
    min_elapsed: bool = False
    handed_off: bool = False
    torn_down: bool = False
    timers: list[TimerHandle] = field(default_factory=list)
    request_task: asyncio.Task[EventRequestResult] | None = None
    done: asyncio.Future[DiscoveryOutcome] | None = None

    @property
    def activated(self) -> bool:
        """The one-shot latch: set once the attempt has been started."""
        return self.started_at_ms is not None

    @property
    def navigation(self) -> DiscoveryQuery:
        return DiscoveryQuery(query=self.query, filters=self.filters)


class DiscoveryOrchestrator:
    """
    Runs a discovery attempt against the generation service.

    Usage:
        attempt = DiscoveryAttempt(profile, filters, query="rooftop drinks")
        orchestrator = DiscoveryOrchestrator(
            attempt, client, handoff=handoff, navigate=redirect
        )
        outcome = await orchestrator.run()
    """

    def __init__(
        self,
        attempt: DiscoveryAttempt,
        client: EventRequestClient,
        handoff: TransientHandoff | None = None,
        navigate: NavigateFn | None = None,
        *,
        min_display_ms: float | None = None,
        max_timeout_ms: float | None = None,
        clock: Clock | None = None,
    ):
        settings = get_settings()
        self.attempt = attempt
        self.client = client
        self.handoff = handoff
        self.navigate = navigate
        self.min_display_ms = (
            settings.min_display_ms if min_display_ms is None else min_display_ms
        )
        self.max_timeout_ms = (
            settings.max_timeout_ms if max_timeout_ms is None else max_timeout_ms
        )
        self.clock = clock or LoopClock()

        if self.max_timeout_ms < self.min_display_ms:
            logger.warning(
                "max_timeout_ms (%s) is shorter than min_display_ms (%s); timeout wins",
                self.max_timeout_ms,
                self.min_display_ms,
            )

    def activate(self) -> bool:
        """
        Start the attempt if it has not been started yet.

        Must be called from within a running event loop.

        Returns:
            True if this call started the attempt, False if the latch was
            already set (or the attempt was torn down)
        """
        attempt = self.attempt
        if attempt.activated or attempt.torn_down:
            logger.debug(
                "[Discovery] Skipping activation | status=%s torn_down=%s",
                attempt.state.status.value,
                attempt.torn_down,
            )
            return False

        loop = asyncio.get_running_loop()
        attempt.started_at_ms = self.clock.now_ms()
        attempt.done = loop.create_future()
        attempt.state.start()
        if self.handoff is not None:
            self.handoff.clear()

        if self.min_display_ms <= 0:
            attempt.min_elapsed = True
        else:
            attempt.timers.append(
                self.clock.call_later(
                    self.min_display_ms, lambda: self._dispatch(AttemptEvent.MIN_ELAPSED)
                )
            )
        attempt.timers.append(
            self.clock.call_later(
                self.max_timeout_ms, lambda: self._dispatch(AttemptEvent.MAX_ELAPSED)
            )
        )

        logger.debug(
            "[Discovery] Attempt started | query=%s location=%s min=%sms max=%sms",
            attempt.query[:50],
            attempt.filters.location or attempt.profile.city,
            self.min_display_ms,
            self.max_timeout_ms,
        )

        attempt.request_task = asyncio.ensure_future(
            self.client.create_events(attempt.profile, attempt.filters, attempt.query or None)
        )
        attempt.request_task.add_done_callback(self._on_request_done)
        return True

    async def run(self) -> DiscoveryOutcome:
        """Activate if needed and wait for the hand-off."""
        self.activate()
        if self.attempt.done is None:
            raise RuntimeError("Discovery attempt was torn down before it started")
        return await self.attempt.done

    def teardown(self) -> None:
        """Cancel outstanding timers and the request; later callbacks are ignored."""
        attempt = self.attempt
        if attempt.torn_down:
            return
        attempt.torn_down = True
        self._cancel_pending()
        if attempt.done is not None and not attempt.done.done():
            attempt.done.cancel()
        logger.debug("[Discovery] Torn down | handed_off=%s", attempt.handed_off)

    def _elapsed_ms(self) -> float:
        return self.clock.now_ms() - (self.attempt.started_at_ms or 0.0)

    def _cancel_pending(self) -> None:
        attempt = self.attempt
        for timer in attempt.timers:
            timer.cancel()
        attempt.timers.clear()
        if attempt.request_task is not None and not attempt.request_task.done():
            attempt.request_task.cancel()

    def _on_request_done(self, task: asyncio.Task[EventRequestResult]) -> None:
        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            logger.error("Event request raised unexpectedly: %s", error, exc_info=error)
            result = EventRequestResult(failure=FailureKind.NETWORK, error=str(error))
        else:
            result = task.result()

        self._dispatch(AttemptEvent.REQUEST_SETTLED, result)

    def _dispatch(self, event: AttemptEvent, result: EventRequestResult | None = None) -> None:
        """Single transition function for the attempt race."""
        attempt = self.attempt
        if attempt.torn_down or attempt.handed_off:
            logger.debug("[Discovery] Ignoring %s after completion", event.value)
            return

        if event is AttemptEvent.REQUEST_SETTLED:
            if result is None:
                raise RuntimeError("REQUEST_SETTLED dispatched without a result")
            if result.ok and result.events:
                attempt.state.succeed(result.events)
            elif result.ok:
                attempt.state.fail(FailureKind.EMPTY_RESULT, result.error or "No events returned")
            else:
                attempt.state.fail(result.failure or FailureKind.NETWORK, result.error)
            logger.debug(
                "[Discovery] Request settled | status=%s elapsed=%.0fms",
                attempt.state.status.value,
                self._elapsed_ms(),
            )
            if attempt.min_elapsed:
                self._hand_off(timed_out=False)

        elif event is AttemptEvent.MIN_ELAPSED:
            attempt.min_elapsed = True
            if attempt.state.is_terminal:
                self._hand_off(timed_out=False)

        elif event is AttemptEvent.MAX_ELAPSED:
            timed_out = not attempt.state.is_terminal
            if timed_out:
                attempt.state.fail(
                    FailureKind.TIMEOUT,
                    f"No response within {self.max_timeout_ms}ms",
                )
                logger.warning(
                    "Event generation timed out after %sms, proceeding without results",
                    self.max_timeout_ms,
                )
            self._hand_off(timed_out=timed_out)

    def _hand_off(self, timed_out: bool) -> None:
        attempt = self.attempt
        done = attempt.done
        if done is None:
            raise RuntimeError("Hand-off requested for an attempt that was never activated")
        attempt.handed_off = True
        self._cancel_pending()
        elapsed = self._elapsed_ms()

        wrote = False
        navigation = attempt.navigation
        try:
            if attempt.state.status is DiscoveryStatus.SUCCEEDED and self.handoff is not None:
                self.handoff.write(attempt.state.events)
                wrote = True
            if self.navigate is not None:
                self.navigate(navigation)
        except Exception as e:
            logger.error("Hand-off failed: %s", e, exc_info=True)
            if not done.done():
                done.set_exception(e)
            return

        logger.info(
            "Discovery handed off: status=%s events=%d elapsed=%.0fms timed_out=%s",
            attempt.state.status.value,
            len(attempt.state.events),
            elapsed,
            timed_out,
        )
        if not done.done():
            done.set_result(
                DiscoveryOutcome(
                    state=attempt.state,
                    navigation=navigation,
                    handed_off_at_ms=elapsed,
                    wrote_handoff=wrote,
                    timed_out=timed_out,
                )
            )


def start_attempt(
    profile: Profile,
    filters: SearchFilters,
    query: str = "",
    **kwargs: Any,
) -> DiscoveryOrchestrator:
    """Build an orchestrator over a fresh attempt for the given inputs.

    Keyword arguments are passed through to ``DiscoveryOrchestrator``.
    """
    return DiscoveryOrchestrator(DiscoveryAttempt(profile, filters, query), **kwargs)
