"""Lifecycle hooks - HookName and HookDispatcher."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from agent_orchestrator.core.callables import call_maybe_async

logger = logging.getLogger(__name__)

Hook = Callable[..., Any]


class HookName(str, Enum):
    """Named extension points.

    Argument conventions:
    - workflow hooks: ``(definition, context[, output | error])``
    - step hooks: ``(definition, step, context[, result | error])``
    - task hooks: ``(task, input, context[, result | error])``
    - agent hooks: ``(agent, task, body[, response | error])``
    - orchestrator task hooks: ``(task_definition, execution_context[, result | error])``
    - evaluation hooks: ``(task_definition, result[, evaluation])``
    """

    WORKFLOW_START = "onWorkflowStart"
    WORKFLOW_END = "onWorkflowEnd"
    WORKFLOW_ERROR = "onWorkflowError"
    WORKFLOW_STEP_START = "onWorkflowStepStart"
    WORKFLOW_STEP_END = "onWorkflowStepEnd"
    WORKFLOW_STEP_ERROR = "onWorkflowStepError"
    TASK_START = "onTaskStart"
    TASK_END = "onTaskEnd"
    TASK_ERROR = "onTaskError"
    AGENT_EXECUTE = "onAgentExecute"
    AGENT_EXECUTE_COMPLETE = "onAgentExecuteComplete"
    AGENT_EXECUTE_ERROR = "onAgentExecuteError"
    ORCHESTRATOR_TASK_START = "onOrchestratorTaskStart"
    ORCHESTRATOR_TASK_END = "onOrchestratorTaskEnd"
    ORCHESTRATOR_TASK_ERROR = "onOrchestratorTaskError"
    EVALUATION_START = "onEvaluationStart"
    EVALUATION_END = "onEvaluationEnd"


class HookDispatcher:
    """Ordered, awaited hook dispatch.

    Hooks run strictly in registration order and each one is awaited before
    the next starts. A hook that raises aborts the emit and the error reaches
    the caller of :meth:`emit`.
    """

    def __init__(self) -> None:
        self._hooks: dict[HookName, list[Hook]] = {}

    def add(self, name: HookName | str, hook: Hook) -> None:
        """Register a hook (plain function or coroutine function).

        Args:
            name: Hook name, either a HookName or its string value.
            hook: Callable invoked with the hook's arguments.

        Raises:
            ValueError: If the name is not a known hook.
        """
        key = HookName(name)
        self._hooks.setdefault(key, []).append(hook)

    def hooks(self, name: HookName | str) -> list[Hook]:
        """Return a copy of the hooks registered under ``name``."""
        return list(self._hooks.get(HookName(name), []))

    async def emit(self, name: HookName, *args: Any) -> None:
        """Run every hook registered under ``name``.

        Args:
            name: Hook to run.
            *args: Positional arguments passed to each hook.
        """
        hooks = self._hooks.get(name)
        if not hooks:
            return

        logger.debug("emitting_hook", extra={"hook": name.value, "hook_count": len(hooks)})

        for hook in list(hooks):
            await call_maybe_async(hook, *args)
