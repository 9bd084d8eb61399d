"""Exception hierarchy for the agent event protocol.

Errors fall into four groups:
- configuration errors, raised synchronously before a run starts
- run failures, surfaced through the run handle after a RUN_ERROR event
- protocol violations, raised when an event breaks the run state machine
- message errors, raised while assembling messages from an event stream
"""


class AgUiError(Exception):
    """Base exception for all protocol errors."""


class AgentConfigurationError(AgUiError, ValueError):
    """Agent or run parameters are missing or invalid."""


class RunFailedError(AgUiError):
    """A run terminated with a RUN_ERROR event.

    Attributes:
        run_id: Identifier of the failed run
        thread_id: Thread the run belonged to
    """

    def __init__(self, message: str, run_id: str | None = None, thread_id: str | None = None):
        super().__init__(message)
        self.run_id = run_id
        self.thread_id = thread_id


class ProtocolError(AgUiError):
    """An event violates the run lifecycle."""


class UnknownEventError(ProtocolError, TypeError):
    """The dispatcher received an object that is not a known event type."""


class RunClosedError(ProtocolError):
    """An event was emitted after the run reached a terminal state."""


class MessageError(AgUiError):
    """Base class for message assembly errors."""


class MessageStateError(MessageError):
    """A message was modified in a way its current state does not allow."""


class MessageNotFoundError(MessageError, KeyError):
    """No message exists for the requested id."""

    def __str__(self) -> str:
        # KeyError repr()s its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class UnsupportedRoleError(MessageError):
    """The requested message role is unknown or does not allow the operation."""
