"""Two-at-a-time carousel over a loaded result list."""

import math
from collections.abc import Sequence

from discovery.models import CarouselState, Direction, GeneratedEvent

PAGE_SIZE = 2


class ResultsCarousel:
    """
    Paginates an immutable event list two items at a time with wraparound.

    Usage:
        carousel = ResultsCarousel(events)
        carousel.next()
        left, right = carousel.visible()
    """

    def __init__(self, events: Sequence[GeneratedEvent], start_index: int = 0):
        self._events: tuple[GeneratedEvent, ...] = tuple(events)
        length = len(self._events)
        start = start_index % length if length else 0
        # Even-length lists only ever show pairs starting on an even index
        if length % 2 == 0:
            start -= start % 2
        self.state = CarouselState(start_index=start)

    @property
    def events(self) -> tuple[GeneratedEvent, ...]:
        return self._events

    @property
    def start_index(self) -> int:
        return self.state.start_index

    @property
    def direction(self) -> Direction:
        return self.state.direction

    def __len__(self) -> int:
        return len(self._events)

    @property
    def can_step(self) -> bool:
        """Stepping only makes sense when there is more than one page."""
        return len(self._events) > PAGE_SIZE

    def next(self) -> int:
        """Advance by one page (wrapping). Returns the new start index."""
        if not self.can_step:
            return self.state.start_index
        self.state.direction = Direction.RIGHT
        self.state.start_index = (self.state.start_index + PAGE_SIZE) % len(self._events)
        return self.state.start_index

    def previous(self) -> int:
        """Step back by one page (wrapping). Returns the new start index."""
        if not self.can_step:
            return self.state.start_index
        length = len(self._events)
        self.state.direction = Direction.LEFT
        index = self.state.start_index - PAGE_SIZE
        if index < 0:
            index += length
            # Keep pairs aligned on even-length lists
            if length % 2 == 0 and index % 2 != 0:
                index -= 1
        self.state.start_index = index
        return index

    def visible(self) -> list[GeneratedEvent]:
        """Events currently on screen: the one at start and the one after it."""
        length = len(self._events)
        if length == 0:
            return []
        if length < PAGE_SIZE:
            return [self._events[self.state.start_index]]
        start = self.state.start_index
        return [self._events[(start + offset) % length] for offset in range(PAGE_SIZE)]

    @property
    def page_count(self) -> int:
        return math.ceil(len(self._events) / PAGE_SIZE)

    @property
    def current_page(self) -> int:
        return self.state.start_index // PAGE_SIZE

    def select_page(self, page: int) -> int:
        """Jump to a page indicator. Returns the new start index.

        The start index is clamped so the last page still shows two events.
        """
        if not 0 <= page < self.page_count:
            raise IndexError(f"Page {page} out of range (0..{self.page_count - 1})")
        index = min(page * PAGE_SIZE, max(len(self._events) - PAGE_SIZE, 0))
        if index > self.state.start_index:
            self.state.direction = Direction.RIGHT
        elif index < self.state.start_index:
            self.state.direction = Direction.LEFT
        self.state.start_index = index
        return index
