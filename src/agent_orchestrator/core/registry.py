"""In-memory registries for units of work (tasks) and capability-tagged agents.

Both registries are injected into the engine and orchestrator; nothing here
is process-global.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from agent_orchestrator.core.callables import call_maybe_async
from agent_orchestrator.core.errors import ExecutionFailure, NotFoundError, ValidationFailure
from agent_orchestrator.core.hooks import HookDispatcher, HookName

logger = logging.getLogger(__name__)

TaskHandler = Callable[[Any, Any], Any]
AgentHandler = Callable[["AgentRequest", "AgentReply"], Awaitable[None] | None]

DEFAULT_CAPABILITY = "general"


@dataclass(frozen=True, slots=True)
class Task:
    """A named unit of work.

    ``input_schema`` / ``output_schema`` are carried for callers that validate
    payloads; the registry itself does not interpret them.
    """

    name: str
    handler: TaskHandler
    hooks: HookDispatcher
    description: str | None = None
    input_schema: Any = None
    output_schema: Any = None

    async def execute(self, input_: Any, context: Any = None) -> Any:
        """Run the handler with ``(input, context)`` wrapped in task hooks."""
        await self.hooks.emit(HookName.TASK_START, self, input_, context)
        try:
            result = await call_maybe_async(self.handler, input_, context)
        except Exception as exc:
            await self.hooks.emit(HookName.TASK_ERROR, self, input_, context, exc)
            raise
        await self.hooks.emit(HookName.TASK_END, self, input_, context, result)
        return result


class TaskRegistry:
    """Name -> Task lookup."""

    def __init__(self, hooks: HookDispatcher | None = None) -> None:
        self.hooks = hooks or HookDispatcher()
        self._tasks: dict[str, Task] = {}

    def register(
        self,
        name: str,
        handler: TaskHandler,
        *,
        description: str | None = None,
        input_schema: Any = None,
        output_schema: Any = None,
    ) -> Task:
        """Register a unit of work.

        Raises:
            ValidationFailure: If a task with this name already exists.
        """
        if name in self._tasks:
            raise ValidationFailure(f"Task {name} already registered")
        task = Task(
            name=name,
            handler=handler,
            hooks=self.hooks,
            description=description,
            input_schema=input_schema,
            output_schema=output_schema,
        )
        self._tasks[name] = task
        logger.debug("task_registered", extra={"task": name})
        return task

    def get(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise NotFoundError(f"Task {name} not found") from None

    def names(self) -> list[str]:
        return list(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    async def execute(self, name: str, input_: Any, context: Any = None) -> Any:
        """Look up ``name`` and run it."""
        return await self.get(name).execute(input_, context)


@dataclass(slots=True)
class AgentRequest:
    """What an agent handler receives."""

    task: Any
    body: Any
    tools: dict[str, Any] = field(default_factory=dict)


class AgentReply:
    """Collects the single ``send`` or ``error`` call an agent handler makes."""

    __slots__ = ("_agent_name", "_settled", "_failed", "data", "failure")

    def __init__(self, agent_name: str) -> None:
        self._agent_name = agent_name
        self._settled = False
        self._failed = False
        self.data: Any = None
        self.failure: Any = None

    @property
    def settled(self) -> bool:
        return self._settled

    def send(self, data: Any) -> None:
        self._settle()
        self.data = data

    def error(self, err: Any) -> None:
        self._settle()
        self._failed = True
        self.failure = err

    def _settle(self) -> None:
        if self._settled:
            raise ExecutionFailure(f"Agent {self._agent_name} replied more than once")
        self._settled = True

    def outcome(self) -> Any:
        """Return the sent data or raise the reported error."""
        if not self._settled:
            raise ExecutionFailure(f"Agent {self._agent_name} finished without replying")
        if self._failed:
            if isinstance(self.failure, BaseException):
                raise self.failure
            raise ExecutionFailure(f"Agent {self._agent_name} failed: {self.failure}")
        return self.data


@dataclass(frozen=True, slots=True)
class Agent:
    """A capability-tagged executor."""

    name: str
    handler: AgentHandler
    hooks: HookDispatcher
    capabilities: tuple[str, ...] = ()
    description: str | None = None

    @property
    def effective_capabilities(self) -> frozenset[str]:
        """Capabilities used for matching; an untagged agent is ``general``."""
        return frozenset(self.capabilities or (DEFAULT_CAPABILITY,))

    def can_handle(self, required: Iterable[str]) -> bool:
        return set(required) <= self.effective_capabilities

    async def execute(self, task: Any, body: Any, tools: dict[str, Any] | None = None) -> Any:
        """Run the handler with a request/reply pair and return what it sent.

        Raises:
            ExecutionFailure: If the handler never replied, replied twice, or
                reported a non-exception error.
        """
        request = AgentRequest(task=task, body=body, tools=dict(tools or {}))
        reply = AgentReply(self.name)

        await self.hooks.emit(HookName.AGENT_EXECUTE, self, task, body)
        try:
            await call_maybe_async(self.handler, request, reply)
            response = reply.outcome()
        except Exception as exc:
            await self.hooks.emit(HookName.AGENT_EXECUTE_ERROR, self, task, body, exc)
            raise
        await self.hooks.emit(HookName.AGENT_EXECUTE_COMPLETE, self, task, body, response)
        return response


class AgentRegistry:
    """Agents in registration order, matched by capability superset."""

    def __init__(self, hooks: HookDispatcher | None = None) -> None:
        self.hooks = hooks or HookDispatcher()
        self._agents: dict[str, Agent] = {}

    def register(
        self,
        name: str,
        handler: AgentHandler,
        *,
        capabilities: Iterable[str] = (),
        description: str | None = None,
    ) -> Agent:
        """Register an agent.

        Raises:
            ValidationFailure: If an agent with this name already exists.
        """
        if name in self._agents:
            raise ValidationFailure(f"Agent {name} already registered")
        agent = Agent(
            name=name,
            handler=handler,
            hooks=self.hooks,
            capabilities=tuple(capabilities),
            description=description,
        )
        self._agents[name] = agent
        logger.debug(
            "agent_registered", extra={"agent": name, "capabilities": list(agent.capabilities)}
        )
        return agent

    def get(self, name: str) -> Agent:
        try:
            return self._agents[name]
        except KeyError:
            raise NotFoundError(f"Agent {name} not found") from None

    def __iter__(self) -> Iterator[Agent]:
        return iter(list(self._agents.values()))

    def __len__(self) -> int:
        return len(self._agents)

    def find_by_capability(self, capability: str) -> list[Agent]:
        """All agents declaring ``capability``, in registration order.

        Only declared capabilities count; untagged agents are never listed.
        """
        return [agent for agent in self if capability in agent.capabilities]

    def find_by_capabilities(self, required: Iterable[str]) -> Agent:
        """First registered agent whose capabilities cover ``required``.

        An empty requirement is covered by every agent.

        Raises:
            NotFoundError: If no agent matches.
        """
        required = list(required)
        for agent in self:
            if agent.can_handle(required):
                return agent
        raise NotFoundError(
            f"No agent found with required capabilities: {', '.join(required) or 'none'}"
        )
