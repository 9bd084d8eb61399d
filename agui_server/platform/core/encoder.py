"""Server-sent events encoding of protocol events."""

import json
import re

from agui_server.platform.core.events import EVENT_ADAPTER, BaseEvent, Event, is_terminal

SSE_CONTENT_TYPE = "text/event-stream"
_DATA_PREFIX = "data:"
# SSE line terminators only: U+2028, U+2029 and U+0085 stay inside payloads
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class EventEncoder:
    """Encodes events as SSE ``data:`` frames and decodes them back.

    Each frame carries one event as a single line of camelCase JSON.
    """

    content_type = SSE_CONTENT_TYPE

    def encode(self, event: BaseEvent) -> str:
        payload = json.dumps(event.to_wire(), separators=(",", ":"), ensure_ascii=False)
        return f"{_DATA_PREFIX} {payload}\n\n"

    def decode(self, frame: str | bytes) -> Event:
        """Parse an SSE frame or a bare JSON object into an event.

        Raises:
            pydantic.ValidationError: If the payload is not a known event
        """
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8")

        lines = [line for line in _LINE_BREAK.split(frame) if line.strip()]
        if lines and lines[0].startswith(_DATA_PREFIX):
            # Multi-line data fields are joined with newlines
            payload = "\n".join(
                _strip_field_space(line[len(_DATA_PREFIX) :]) for line in lines if line.startswith(_DATA_PREFIX)
            )
        else:
            payload = frame
        return EVENT_ADAPTER.validate_json(payload)

    @staticmethod
    def is_terminal(event: BaseEvent) -> bool:
        return is_terminal(event)


def _strip_field_space(value: str) -> str:
    return value[1:] if value.startswith(" ") else value
