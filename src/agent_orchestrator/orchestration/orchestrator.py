"""Orchestrator - decompose a goal, dispatch subtasks to agents, evaluate, retry."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from agent_orchestrator.core.config import EvaluationConfig
from agent_orchestrator.core.errors import NotFoundError, ValidationFailure
from agent_orchestrator.core.hooks import HookDispatcher, HookName
from agent_orchestrator.core.registry import DEFAULT_CAPABILITY, Agent, AgentRegistry

from .evaluation import CriterionScorer, Evaluator
from .models import (
    DecompositionStrategy,
    Evaluation,
    ExecutionContext,
    ExecutionStatus,
    TaskAnalysis,
    TaskDefinition,
)
from .normalization import DEFAULT_ALIASES, InputAlias, normalize_input

logger = logging.getLogger(__name__)

RETRY_FEEDBACK = "Please improve on the previous attempt"
QUALITY_WARNING = "This result did not meet all quality criteria"


class Orchestrator:
    """Runs goal-level tasks through a decompose / dispatch / evaluate loop.

    Subtasks run strictly one after another. Each subtask's result is merged
    into the accumulated input the next subtask receives. A failed
    evaluation is retried with feedback until the attempt budget is spent;
    exceptions are never retried here.

    Every attempt's :class:`ExecutionContext` is kept in ``contexts`` as a run
    history until :meth:`clear_contexts` is called.
    """

    def __init__(
        self,
        agents: AgentRegistry,
        hooks: HookDispatcher | None = None,
        config: EvaluationConfig | None = None,
        *,
        scorer: CriterionScorer | None = None,
        tools: Mapping[str, Any] | None = None,
        aliases: Iterable[InputAlias] = DEFAULT_ALIASES,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            agents: Registry used to pick an agent per subtask.
            hooks: Hook dispatcher; defaults to the registry's dispatcher.
            config: Evaluation settings. If None, loads from environment.
            scorer: Per-criterion scorer; defaults to a presence check.
            tools: Tools handed to every agent request.
            aliases: Capability-driven input aliases.
        """
        self.agents = agents
        self.hooks = hooks or agents.hooks
        self.config = config or EvaluationConfig()
        self.evaluator = Evaluator(self.config, scorer)
        self.tools = dict(tools or {})
        self.aliases = tuple(aliases)
        self.contexts: dict[str, ExecutionContext] = {}
        self._progress_level = logging.INFO if self.config.verbose else logging.DEBUG

    async def execute_task(
        self,
        task: TaskDefinition,
        input_: Mapping[str, Any] | None = None,
        *,
        attempt: int = 1,
        parent_task_id: str | None = None,
    ) -> Any:
        """Execute a task with automatic orchestration.

        Args:
            task: Task to run.
            input_: Task input; defaults to ``task.input``.
            attempt: 1-based attempt number, threaded through evaluation retries.
            parent_task_id: Context id of the attempt that triggered this one.

        Returns:
            The aggregated result. When every attempt fails evaluation, the
            last result annotated with ``_warning`` and ``_evaluation``.

        Raises:
            NotFoundError: If no agent covers a subtask's capabilities.
            ValidationFailure: If the input is not a mapping.
        """
        if input_ is None:
            input_ = task.input
        if not isinstance(input_, Mapping):
            raise ValidationFailure(f"Task {task.name} input must be a mapping")

        context = self._create_context(task, input_, attempt, parent_task_id)
        context.log("info", f"Starting task: {task.name}", {"attempt": attempt})
        context.status = ExecutionStatus.RUNNING

        try:
            await self.hooks.emit(HookName.ORCHESTRATOR_TASK_START, task, context)

            analysis = await self.analyze_task(task, input_)
            strategy = analysis.decomposition_strategy or DecompositionStrategy(
                self.config.default_strategy
            )
            subtasks = self.decompose_task(task, input_, strategy)
            context.subtasks = [subtask.name for subtask in subtasks]
            self._progress(
                f"Decomposed {task.name} into {len(subtasks)} subtasks: "
                f"{', '.join(context.subtasks)}",
                context,
            )

            results = await self._dispatch(context, subtasks, input_)
            aggregated = self.aggregate_results(task, subtasks, results)
            evaluation = await self.evaluate_result(task, aggregated)
            final = await self._handle_evaluation(context, task, aggregated, evaluation, input_)
        except Exception as exc:
            context.log("error", f"Task failed: {exc}", {"error": repr(exc)})
            context.finish(ExecutionStatus.FAILED)
            await self.hooks.emit(HookName.ORCHESTRATOR_TASK_ERROR, task, context, exc)
            raise

        context.finish(ExecutionStatus.COMPLETED)
        await self.hooks.emit(HookName.ORCHESTRATOR_TASK_END, task, context, final)
        self._progress(f"Task {task.name} completed", context)
        return final

    async def run(self, task: TaskDefinition, input_: Mapping[str, Any] | None = None) -> Any:
        """Shorthand for :meth:`execute_task`."""
        return await self.execute_task(task, input_)

    def define_task(
        self, task: TaskDefinition
    ) -> Callable[[Mapping[str, Any] | None], Awaitable[Any]]:
        """Bind ``task`` into a reusable ``async (input) -> result`` callable."""

        async def run_defined(input_: Mapping[str, Any] | None = None) -> Any:
            return await self.execute_task(task, input_)

        run_defined.__name__ = f"run_{task.name}"
        return run_defined

    def clear_contexts(self) -> int:
        """Drop the stored run history and return how many contexts it held."""
        count = len(self.contexts)
        self.contexts.clear()
        return count

    def get_context(self, task_id: str) -> ExecutionContext:
        try:
            return self.contexts[task_id]
        except KeyError:
            raise NotFoundError(f"Execution context {task_id} not found") from None

    async def analyze_task(self, task: TaskDefinition, input_: Mapping[str, Any]) -> TaskAnalysis:
        """Choose an execution approach.

        A fixed heuristic; override to plug in model-backed analysis.
        """
        return TaskAnalysis(
            complexity="medium",
            estimated_time="5m",
            decomposition_strategy=DecompositionStrategy.AUTO,
            suggested_capabilities=list(task.required_capabilities or ()) or [DEFAULT_CAPABILITY],
        )

    def decompose_task(
        self,
        task: TaskDefinition,
        input_: Mapping[str, Any],
        strategy: DecompositionStrategy = DecompositionStrategy.AUTO,
    ) -> list[TaskDefinition]:
        """Split ``task`` into one subtask per required capability.

        AUTO with at most one capability keeps the task atomic.
        """
        capabilities = task.required_capabilities or []
        if strategy is DecompositionStrategy.AUTO and len(capabilities) <= 1:
            return [task]
        if not capabilities:
            return [task]

        return [
            TaskDefinition(
                name=f"{task.name}_{capability}",
                description=f"Handle {capability} aspect of {task.name}",
                goal=task.goal,
                input=dict(input_),
                expected_output=task.expected_output,
                required_capabilities=[capability],
            )
            for capability in capabilities
        ]

    def select_agent(self, task: TaskDefinition) -> Agent:
        """First registered agent covering the task's capabilities.

        Unset capabilities mean ``general``; an empty list matches any agent.
        """
        required = task.required_capabilities
        if required is None:
            required = [DEFAULT_CAPABILITY]
        return self.agents.find_by_capabilities(required)

    def aggregate_results(
        self, task: TaskDefinition, subtasks: list[TaskDefinition], results: list[Any]
    ) -> Any:
        """One result is returned as is; several are shallow-merged in order."""
        if len(results) == 1:
            return results[0]

        combined: dict[str, Any] = {}
        for subtask, result in zip(subtasks, results):
            if isinstance(result, Mapping):
                combined.update(result)
            else:
                combined[subtask.name] = result
        return combined

    async def evaluate_result(self, task: TaskDefinition, result: Any) -> Evaluation:
        await self.hooks.emit(HookName.EVALUATION_START, task, result)
        evaluation = await self.evaluator.evaluate(task, result)
        await self.hooks.emit(HookName.EVALUATION_END, task, result, evaluation)
        return evaluation

    async def _dispatch(
        self,
        context: ExecutionContext,
        subtasks: list[TaskDefinition],
        input_: Mapping[str, Any],
    ) -> list[Any]:
        results: list[Any] = []
        accumulated = dict(input_)

        for subtask in subtasks:
            agent = self.select_agent(subtask)
            context.agents[subtask.name] = agent.name
            self._progress(
                f"Selected agent {agent.name} for subtask {subtask.name} "
                f"(capabilities: {', '.join(agent.capabilities) or 'none'})",
                context,
            )

            body = normalize_input(accumulated, agent.capabilities, self.aliases)
            result = await agent.execute(subtask, body, self.tools)
            results.append(result)

            if isinstance(result, Mapping):
                accumulated.update(result)
            context.intermediate_results[subtask.name] = result
            self._progress(f"Subtask {subtask.name} completed", context)

        return results

    async def _handle_evaluation(
        self,
        context: ExecutionContext,
        task: TaskDefinition,
        result: Any,
        evaluation: Evaluation,
        input_: Mapping[str, Any],
    ) -> Any:
        if evaluation.passed:
            return result

        max_attempts = task.max_attempts or self.config.max_retries
        if context.attempt >= max_attempts:
            context.log(
                "warning",
                f"Task {task.name} didn't meet evaluation criteria after "
                f"{context.attempt} attempts. Returning best result.",
                evaluation.model_dump(),
            )
            annotated = dict(result) if isinstance(result, Mapping) else {"result": result}
            annotated["_warning"] = QUALITY_WARNING
            annotated["_evaluation"] = evaluation.model_dump()
            return annotated

        context.log(
            "info",
            f"Retrying task {task.name} due to evaluation score: {evaluation.score:.3f}",
        )
        enhanced_input = {
            **input_,
            "_previousAttempt": {
                "result": result,
                "evaluation": evaluation.model_dump(),
                "feedback": RETRY_FEEDBACK,
            },
        }
        return await self.execute_task(
            task,
            enhanced_input,
            attempt=context.attempt + 1,
            parent_task_id=context.task_id,
        )

    def _create_context(
        self,
        task: TaskDefinition,
        input_: Mapping[str, Any],
        attempt: int,
        parent_task_id: str | None,
    ) -> ExecutionContext:
        context = ExecutionContext(
            task_id=f"{task.name}-{uuid.uuid4().hex[:12]}",
            parent_task_id=parent_task_id,
            attempt=attempt,
            input=dict(input_),
        )
        self.contexts[context.task_id] = context
        return context

    def _progress(self, message: str, context: ExecutionContext) -> None:
        logger.log(self._progress_level, message, extra={"task_id": context.task_id})
