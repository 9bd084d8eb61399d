"""Agent contract and run harness.

A :class:`LocalAgent` owns a conversation (thread id, state, message
history). Each call to :meth:`LocalAgent.run_agent` starts one run on its own
asyncio task and immediately returns a :class:`RunHandle`. The harness around
the agent's ``run`` body guarantees that the subscriber always sees exactly
one terminal event and one finalization callback.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from collections.abc import Generator
from dataclasses import dataclass, field
from typing import Any

import structlog
from opentelemetry import trace

from agui_server.platform.core.context import RunAgentInput, RunAgentParameters
from agui_server.platform.core.exceptions import AgentConfigurationError, RunFailedError
from agui_server.platform.core.lifecycle import RunEmitter, RunState
from agui_server.platform.core.messages import BaseMessage, generate_id
from agui_server.platform.core.subscriber import AgentSubscriber, AgentSubscriberParams
from agui_server.platform.observability.metrics import RunMetricsLabels, collect_run_metrics

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class AgentConfig:
    """Construction parameters of an agent.

    Attributes:
        agent_id: Stable identifier of the agent, used in logs and metrics
        thread_id: Conversation the agent starts on
        instructions: System prompt prepended by provider integrations
        state: Initial opaque state
        messages: Initial message history
        description: Human-readable description
    """

    agent_id: str
    thread_id: str
    instructions: str = ""
    state: dict[str, Any] = field(default_factory=dict)
    messages: list[BaseMessage] = field(default_factory=list)
    description: str = ""


class CancellationFlag:
    """Cooperative cancellation signal polled by run bodies between chunks.

    May be set from any thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()


class RunHandle:
    """Caller-side view of a scheduled run.

    Awaiting the handle waits for the run to finish. It returns ``None`` on
    success and raises :class:`RunFailedError` when the run ended with
    RUN_ERROR.
    """

    def __init__(self, task: asyncio.Task[None], input: RunAgentInput, cancellation: CancellationFlag):
        self._task = task
        self._input = input
        self._cancellation = cancellation

    @property
    def task(self) -> asyncio.Task[None]:
        return self._task

    @property
    def input(self) -> RunAgentInput:
        return self._input

    @property
    def run_id(self) -> str:
        return self._input.run_id

    @property
    def thread_id(self) -> str:
        return self._input.thread_id

    @property
    def cancelled(self) -> bool:
        return self._cancellation.is_set()

    def cancel(self) -> None:
        """Ask the run to stop producing events. The run still terminates normally."""
        self._cancellation.set()

    def done(self) -> bool:
        return self._task.done()

    def __await__(self) -> Generator[Any, None, None]:
        return self._task.__await__()


class LocalAgent(ABC):
    """Base class for agents that run in-process.

    Subclasses implement :meth:`run`, emitting the run's events through the
    given :class:`RunEmitter`. Only one run per agent instance is expected at
    a time; concurrent runs share and race on the message history.
    """

    def __init__(self, config: AgentConfig) -> None:
        if not config.agent_id or not config.agent_id.strip():
            raise AgentConfigurationError("agent_id is required")
        if not config.thread_id or not config.thread_id.strip():
            raise AgentConfigurationError("thread_id is required")

        self._agent_id = config.agent_id
        self._description = config.description
        self._instructions = config.instructions
        self._thread_id = config.thread_id
        self.state: dict[str, Any] = dict(config.state)
        self.messages: list[BaseMessage] = list(config.messages)

    @property
    def agent_id(self) -> str:
        return self._agent_id

    @property
    def description(self) -> str:
        return self._description

    @property
    def instructions(self) -> str:
        return self._instructions

    @property
    def thread_id(self) -> str:
        return self._thread_id

    @thread_id.setter
    def thread_id(self, value: str) -> None:
        if not value or not value.strip():
            raise AgentConfigurationError("thread_id is required")
        self._thread_id = value

    def add_message(self, message: BaseMessage) -> None:
        self.messages.append(message)

    def subscriber_params(self, input: RunAgentInput) -> AgentSubscriberParams:
        return AgentSubscriberParams(messages=self.messages, state=self.state, agent=self, input=input)

    def prepare_run_input(self, parameters: RunAgentParameters) -> RunAgentInput:
        """Build the input of the next run.

        Messages carried by ``parameters`` are appended to the history first,
        so they are part of the run's input.
        """
        if parameters.messages:
            self.messages.extend(parameters.messages)

        return RunAgentInput(
            thread_id=self.thread_id,
            run_id=parameters.run_id or generate_id(),
            state=self.state,
            messages=self.messages,
            tools=list(parameters.tools),
            context=list(parameters.context),
            forwarded_props=parameters.forwarded_props,
        )

    def run_agent(
        self,
        parameters: RunAgentParameters | None,
        subscriber: AgentSubscriber,
        cancellation: CancellationFlag | None = None,
    ) -> RunHandle:
        """Start a run and return its handle without waiting for it.

        Must be called from a running event loop.

        Raises:
            AgentConfigurationError: If no event loop is running
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise AgentConfigurationError("run_agent requires a running event loop") from e

        input = self.prepare_run_input(parameters or RunAgentParameters())
        cancellation = cancellation or CancellationFlag()
        emitter = RunEmitter(self, input, subscriber, cancellation)

        subscriber.on_run_initialized(self.subscriber_params(input))

        task = loop.create_task(
            self._execute(input, emitter, subscriber),
            name=f"agent-run-{input.run_id}",
        )
        return RunHandle(task, input, cancellation)

    async def _execute(self, input: RunAgentInput, emitter: RunEmitter, subscriber: AgentSubscriber) -> None:
        structlog.contextvars.bind_contextvars(
            agent=self.agent_id,
            thread_id=input.thread_id,
            run_id=input.run_id,
        )
        params = self.subscriber_params(input)
        try:
            with tracer.start_as_current_span(f"run {self.agent_id}"):
                async with collect_run_metrics(RunMetricsLabels(agent=self.agent_id)):
                    await self._run_to_completion(input, emitter, subscriber, params)
        finally:
            subscriber.on_run_finalized(params)

    async def _run_to_completion(
        self,
        input: RunAgentInput,
        emitter: RunEmitter,
        subscriber: AgentSubscriber,
        params: AgentSubscriberParams,
    ) -> None:
        logger.info("agent_run_started")
        try:
            await self.run(input, emitter)
            if emitter.state is RunState.PENDING:
                emitter.start()
            if not emitter.closed:
                emitter.finish()
        except asyncio.CancelledError:
            logger.warning("agent_run_task_cancelled")
            if not emitter.closed:
                emitter.fail("Run was cancelled")
                cancelled = RunFailedError("Run was cancelled", input.run_id, input.thread_id)
                subscriber.on_run_failed(params, cancelled)
            raise
        except Exception as e:
            logger.error("agent_run_failed", error=str(e), error_type=type(e).__name__, exc_info=True)
            if not emitter.closed:
                emitter.fail(e)
            subscriber.on_run_failed(params, e)
            raise RunFailedError(
                emitter.error or str(e) or type(e).__name__,
                run_id=input.run_id,
                thread_id=input.thread_id,
            ) from e

        if emitter.state is RunState.ERRORED:
            # The body reported the failure itself through the emitter
            error = RunFailedError(
                emitter.error or "Run failed", run_id=input.run_id, thread_id=input.thread_id
            )
            subscriber.on_run_failed(params, error)
            raise error

        logger.info("agent_run_finished")

    @abstractmethod
    async def run(self, input: RunAgentInput, emitter: RunEmitter) -> None:
        """Produce the events of one run.

        Implementations should call ``emitter.start()`` first and stop early
        when ``emitter.cancelled`` becomes true. Returning without a terminal
        event finishes the run; raising fails it.
        """
        ...
