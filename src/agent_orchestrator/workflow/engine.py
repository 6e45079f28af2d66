"""Workflow engine - top-level entry point for running workflow definitions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from agent_orchestrator.core.callables import call_maybe_async
from agent_orchestrator.core.config import WorkflowConfig
from agent_orchestrator.core.hooks import HookDispatcher, HookName
from agent_orchestrator.core.registry import TaskRegistry

from .context import WorkflowContext
from .definition import WorkflowDefinition
from .interpreter import StepInterpreter

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Runs workflows with lifecycle hooks and per-run contexts."""

    def __init__(
        self,
        tasks: TaskRegistry,
        hooks: HookDispatcher | None = None,
        config: WorkflowConfig | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            tasks: Registry of units of work referenced by task steps.
            hooks: Hook dispatcher; defaults to the registry's dispatcher.
            config: Interpreter defaults. If None, loads from environment.
        """
        self.hooks = hooks or tasks.hooks
        self.interpreter = StepInterpreter(tasks, self.hooks, config)

    async def execute(
        self,
        definition: WorkflowDefinition,
        input_: Any = None,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> WorkflowContext:
        """Run a workflow once.

        Args:
            definition: Workflow to run.
            input_: Workflow input; defaults to an empty dict.
            metadata: Free-form metadata copied into the context.

        Returns:
            The run's context. ``context.result`` holds the final traversal
            result and ``context.output`` the accumulated output.
        """
        context = WorkflowContext(
            input={} if input_ is None else input_,
            metadata=dict(metadata or {}),
        )
        log_extra = {"workflow_id": definition.id}

        logger.info(f"Starting workflow {definition.name}", extra=log_extra)
        await self.hooks.emit(HookName.WORKFLOW_START, definition, context)

        try:
            context.result = await self.interpreter.execute(definition, context)
        except Exception as exc:
            context.end_time = datetime.now(UTC)
            context.errors["workflow"] = exc
            logger.error(
                f"Workflow {definition.name} failed at step {context.current_step}: {exc}",
                extra=log_extra,
            )
            await self.hooks.emit(HookName.WORKFLOW_ERROR, definition, context, exc)
            for on_error in definition.on_error:
                await call_maybe_async(on_error, exc, context)
            raise

        context.end_time = datetime.now(UTC)
        await self.hooks.emit(HookName.WORKFLOW_END, definition, context, context.output)
        for on_completed in definition.on_completed:
            await call_maybe_async(on_completed, context.output, context)

        logger.info(
            f"Workflow {definition.name} completed in {context.duration_ms}ms",
            extra={**log_extra, "step_count": len(context.steps)},
        )
        return context
