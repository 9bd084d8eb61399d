"""Run-scoped buffer for tool-call events withheld while a text message is open."""

from collections.abc import Iterator

from agui_server.platform.core.events import Event


class DeferredEventBuffer:
    """Ordered, append-only holding area for deferred events.

    Events come back out of :meth:`flush` in insertion order. The buffer is
    owned by a single run and is not safe for concurrent writers.
    """

    def __init__(self) -> None:
        self._events: list[Event] = []

    def append(self, event: Event) -> None:
        self._events.append(event)

    def flush(self) -> list[Event]:
        """Return all buffered events in insertion order and empty the buffer."""
        events, self._events = self._events, []
        return events

    def discard(self) -> int:
        """Drop everything buffered. Returns the number of dropped events."""
        dropped = len(self._events)
        self._events = []
        return dropped

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))
