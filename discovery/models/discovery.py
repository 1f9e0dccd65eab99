"""State models for discovery attempts and the results carousel."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field

from discovery.models.events import GeneratedEvent


class DiscoveryStatus(str, Enum):
    """Lifecycle of a single discovery request."""

    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why a discovery request did not produce events."""

    NETWORK = "network"  # never reached the server / no response
    HTTP = "http"  # non-2xx status
    PARSE = "parse"  # body not JSON, wrong shape, or success=false
    EMPTY_RESULT = "empty_result"  # success with zero events
    TIMEOUT = "timeout"  # max timeout elapsed before resolution


class InvalidTransitionError(RuntimeError):
    """Raised when a request state is moved along an edge it does not have."""


@dataclass
class DiscoveryRequestState:
    """State of one discovery request.

    Exactly one instance exists per attempt. Once SUCCEEDED or FAILED the
    state is terminal and every further transition raises.
    """

    status: DiscoveryStatus = DiscoveryStatus.NOT_STARTED
    events: list[GeneratedEvent] = field(default_factory=list)
    failure: FailureKind | None = None
    reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (DiscoveryStatus.SUCCEEDED, DiscoveryStatus.FAILED)

    def start(self) -> None:
        if self.status is not DiscoveryStatus.NOT_STARTED:
            raise InvalidTransitionError(f"Cannot start a request that is {self.status.value}")
        self.status = DiscoveryStatus.IN_FLIGHT

    def succeed(self, events: list[GeneratedEvent]) -> None:
        if self.status is not DiscoveryStatus.IN_FLIGHT:
            raise InvalidTransitionError(f"Cannot succeed a request that is {self.status.value}")
        if not events:
            raise InvalidTransitionError("A succeeded request must carry events")
        self.status = DiscoveryStatus.SUCCEEDED
        self.events = list(events)

    def fail(self, failure: FailureKind, reason: str | None = None) -> None:
        if self.status is not DiscoveryStatus.IN_FLIGHT:
            raise InvalidTransitionError(f"Cannot fail a request that is {self.status.value}")
        self.status = DiscoveryStatus.FAILED
        self.failure = failure
        self.reason = reason


class EventRequestResult(BaseModel):
    """Normalized outcome of one call to the generation service."""

    events: list[GeneratedEvent] = Field(default_factory=list)
    failure: FailureKind | None = None
    error: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class Direction(str, Enum):
    """Direction of the last carousel step (drives the slide animation)."""

    LEFT = "left"
    RIGHT = "right"


@dataclass
class CarouselState:
    """Position of the results carousel."""

    start_index: int = 0
    direction: Direction = Direction.RIGHT
