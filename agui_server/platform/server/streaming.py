"""Server-sent events sink for agent runs.

:class:`EventStreamSubscriber` queues the events of one run in their
normalized form and exposes them as encoded SSE frames. The frame iterator
ends after the run's terminal event.
"""

import asyncio
from collections.abc import AsyncIterator

from agui_server.platform.core.encoder import EventEncoder
from agui_server.platform.core.events import (
    BaseEvent,
    TextMessageChunkEvent,
    TextMessageContentEvent,
    is_terminal,
)
from agui_server.platform.core.subscriber import AgentSubscriber, AgentSubscriberParams


class EventStreamSubscriber(AgentSubscriber):
    """Queues run events for an HTTP response.

    Chunk events are forwarded in their content form: the chunk seen by
    ``on_event`` is held back and the content event the dispatcher derives
    from it is queued instead.
    """

    def __init__(self, encoder: EventEncoder | None = None) -> None:
        self._encoder = encoder or EventEncoder()
        self._queue: asyncio.Queue[BaseEvent | None] = asyncio.Queue()
        self._chunk_pending = False
        self._closed = False

    @property
    def media_type(self) -> str:
        return self._encoder.content_type

    @property
    def completed(self) -> bool:
        """True once the terminal event has been handed to the consumer."""
        return self._closed

    def on_event(self, event: BaseEvent) -> None:
        if isinstance(event, TextMessageChunkEvent):
            self._chunk_pending = True
            return
        self._put(event)

    def on_text_message_content(self, event: TextMessageContentEvent) -> None:
        if self._chunk_pending:
            self._chunk_pending = False
            self._put(event)

    def on_run_finalized(self, params: AgentSubscriberParams) -> None:
        # Unblocks the consumer if the run ended without a terminal event
        self._queue.put_nowait(None)

    def _put(self, event: BaseEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    async def events(self) -> AsyncIterator[BaseEvent]:
        """Yield queued events up to and including the terminal event."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
            if is_terminal(event):
                self._closed = True
                return

    async def frames(self) -> AsyncIterator[str]:
        async for event in self.events():
            yield self._encoder.encode(event)
