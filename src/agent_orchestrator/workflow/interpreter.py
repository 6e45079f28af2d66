"""Step graph interpreter.

Walks a :class:`WorkflowDefinition` from its entrypoint, dispatching each
step by variant, recording results in the :class:`WorkflowContext` and
following successors until a step has none.

Concurrency only appears in parallel steps, map batches and list-valued
successors. Branches are never cancelled: when a parallel step fails or a
race is decided, the remaining branches keep running with their writes to
the shared context still applied. Those orphaned branches are tracked here
so they are not garbage-collected mid-flight; :meth:`StepInterpreter.drain`
waits for them.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any

from agent_orchestrator.core.callables import call_maybe_async
from agent_orchestrator.core.config import WorkflowConfig
from agent_orchestrator.core.errors import ValidationFailure
from agent_orchestrator.core.hooks import HookDispatcher, HookName
from agent_orchestrator.core.registry import TaskRegistry

from .context import WorkflowContext
from .definition import WorkflowDefinition
from .paths import get_path, is_step_reference, lookup, set_path
from .steps import (
    ConditionStep,
    ContextPredicate,
    MapStep,
    ParallelStep,
    RetryStep,
    Step,
    Successor,
    TaskStep,
)

logger = logging.getLogger(__name__)


class StepInterpreter:
    """Executes workflow definitions against a task registry."""

    def __init__(
        self,
        tasks: TaskRegistry,
        hooks: HookDispatcher | None = None,
        config: WorkflowConfig | None = None,
    ) -> None:
        """Initialize the interpreter.

        Args:
            tasks: Registry used to resolve task steps.
            hooks: Hook dispatcher; defaults to the registry's dispatcher.
            config: Interpreter defaults. If None, loads from environment.
        """
        self.tasks = tasks
        self.hooks = hooks or tasks.hooks
        self.config = config or WorkflowConfig()
        self._detached: set[asyncio.Future[Any]] = set()

    async def execute(self, definition: WorkflowDefinition, context: WorkflowContext) -> Any:
        """Run ``definition`` from its entrypoint.

        Returns:
            The result of the last step reached (for a fan-out, the list of
            branch results). ``context.output`` is filled separately.
        """
        return await self.run_step(definition.entrypoint, definition, context)

    async def run_step(
        self, step_id: str, definition: WorkflowDefinition, context: WorkflowContext
    ) -> Any:
        """Run one step, apply its inline retry policy, then follow ``next``."""
        step = definition.step(step_id)
        log_extra = {"workflow_id": definition.id, "step_id": step_id, "step_type": step.type.value}

        context.current_step = step_id
        await self.hooks.emit(HookName.WORKFLOW_STEP_START, definition, step, context)
        logger.debug(f"Running step {step_id}", extra=log_extra)

        try:
            result = await self._dispatch(step, definition, context)
        except Exception as exc:
            context.errors[step_id] = exc
            await self.hooks.emit(HookName.WORKFLOW_STEP_ERROR, definition, step, context, exc)

            if isinstance(step, TaskStep) and step.retries > 0:
                logger.warning(
                    f"Step {step_id} failed ({exc}); {step.retries} retries left",
                    extra=log_extra,
                )
                if step.retry_delay > 0:
                    await asyncio.sleep(step.retry_delay)
                # The stored definition stays untouched; only this traversal
                # sees the decremented budget.
                retry_step = dataclasses.replace(step, retries=step.retries - 1)
                return await self.run_step(step_id, definition.with_step(retry_step), context)

            logger.debug(f"Step {step_id} failed: {exc}", extra=log_extra)
            raise

        context.steps.record(step_id, result)
        await self.hooks.emit(HookName.WORKFLOW_STEP_END, definition, step, context, result)

        return await self._follow(step.next, definition, context, result)

    async def drain(self) -> None:
        """Wait for branches left running by failed parallel steps or races."""
        while self._detached:
            await asyncio.gather(*list(self._detached), return_exceptions=True)

    @property
    def pending_branches(self) -> int:
        return len(self._detached)

    async def _dispatch(
        self, step: Step, definition: WorkflowDefinition, context: WorkflowContext
    ) -> Any:
        match step:
            case TaskStep():
                return await self._run_task(step, context)
            case ParallelStep():
                return await self._run_parallel(step, definition, context)
            case ConditionStep():
                return await self._run_condition(step, definition, context)
            case MapStep():
                return await self._run_map(step, definition, context)
            case RetryStep():
                return await self._run_retry(step, definition, context)
            case _:
                raise ValidationFailure(f"Unknown step type: {type(step).__name__}")

    async def _follow(
        self,
        next_: Successor,
        definition: WorkflowDefinition,
        context: WorkflowContext,
        result: Any,
    ) -> Any:
        if next_ is None:
            return result
        if isinstance(next_, str):
            return await self.run_step(next_, definition, context)
        return await self._all_branches(
            self.run_step(branch_id, definition, context) for branch_id in next_
        )

    # -- task -----------------------------------------------------------------

    async def _run_task(self, step: TaskStep, context: WorkflowContext) -> Any:
        task = self.tasks.get(step.task_name)

        if step.condition is not None:
            if not await self._evaluate(step.condition, context, step.id):
                logger.debug(f"Step {step.id} skipped by its condition", extra={"step_id": step.id})
                return None

        task_input = await self._resolve_input(step, context)
        result = await task.execute(task_input, context)
        self._apply_output(step, context, result)
        return result

    async def _resolve_input(self, step: TaskStep, context: WorkflowContext) -> Any:
        if step.input_map is None:
            return context.input

        task_input: dict[str, Any] = {}
        for target_key, source in step.input_map.items():
            if callable(source):
                task_input[target_key] = await call_maybe_async(source, context)
            elif is_step_reference(source):
                task_input[target_key] = get_path(context, source)
            else:
                # Plain keys read the workflow input, not the accumulated output.
                task_input[target_key] = lookup(context.input, source)
        return task_input

    def _apply_output(self, step: TaskStep, context: WorkflowContext, result: Any) -> None:
        if step.output_map is None:
            if isinstance(result, Mapping):
                context.output.update(result)
            return

        for result_key, target_path in step.output_map.items():
            set_path(context.output, target_path, lookup(result, result_key))

    # -- parallel / condition ---------------------------------------------------

    async def _run_parallel(
        self, step: ParallelStep, definition: WorkflowDefinition, context: WorkflowContext
    ) -> Any:
        branches = (self.run_step(branch_id, definition, context) for branch_id in step.branches)
        if step.wait_for_all:
            return await self._all_branches(branches)
        return await self._first_branch(branches)

    async def _run_condition(
        self, step: ConditionStep, definition: WorkflowDefinition, context: WorkflowContext
    ) -> Any:
        chosen = await self._evaluate(step.predicate, context, step.id)
        next_id = step.true_next if chosen else step.false_next
        logger.debug(
            f"Condition {step.id} evaluated {bool(chosen)}, following {next_id}",
            extra={"step_id": step.id},
        )
        return await self.run_step(next_id, definition, context)

    # -- map ------------------------------------------------------------------

    async def _run_map(
        self, step: MapStep, definition: WorkflowDefinition, context: WorkflowContext
    ) -> list[Any]:
        items = self._resolve_items(step, context)
        batch_size = step.concurrency if step.concurrency and step.concurrency > 0 else None
        batch_size = batch_size or self.config.map_concurrency

        results: list[Any] = []
        for start in range(0, len(items), batch_size):
            batch = items[start : start + batch_size]
            results.extend(
                await self._all_branches(
                    self.run_step(step.iterator, definition, context.fork_for_item(item))
                    for item in batch
                )
            )
        return results

    @staticmethod
    def _resolve_items(step: MapStep, context: WorkflowContext) -> list[Any]:
        source = step.items
        if not isinstance(source, str):
            value: Any = source
            origin = "literal"
        elif is_step_reference(source):
            value = get_path(context, source)
            origin = f"'{source}'"
        else:
            value = lookup(context.input, source)
            origin = f"input '{source}'"

        if not isinstance(value, (list, tuple)):
            raise ValidationFailure(
                f"Map items from {origin} must be a list, got {type(value).__name__}"
            )
        return list(value)

    # -- retry ----------------------------------------------------------------

    async def _run_retry(
        self, step: RetryStep, definition: WorkflowDefinition, context: WorkflowContext
    ) -> Any:
        delay = step.delay if step.delay is not None else self.config.retry_step_delay
        factor = (
            step.backoff_factor
            if step.backoff_factor is not None
            else self.config.retry_step_backoff
        )

        attempt = 0
        while True:
            try:
                return await self.run_step(step.step_id, definition, context)
            except Exception as exc:
                context.errors[f"{step.step_id}_attempt_{attempt}"] = exc
                if attempt >= step.max_retries:
                    raise
                if step.should_retry is not None:
                    try:
                        keep_going = await call_maybe_async(step.should_retry, exc, attempt)
                    except Exception as predicate_error:
                        raise ValidationFailure(
                            f"Retry condition of step {step.id} raised: {predicate_error}"
                        ) from predicate_error
                    if not keep_going:
                        raise

                wait = delay * factor**attempt
                logger.info(
                    f"Retrying step {step.step_id} in {wait:.3f}s "
                    f"(attempt {attempt + 1}/{step.max_retries})",
                    extra={"workflow_id": definition.id, "step_id": step.id},
                )
                if wait > 0:
                    await asyncio.sleep(wait)
                attempt += 1

    # -- helpers --------------------------------------------------------------

    @staticmethod
    async def _evaluate(predicate: ContextPredicate, context: WorkflowContext, step_id: str) -> bool:
        try:
            return bool(await call_maybe_async(predicate, context))
        except Exception as exc:
            raise ValidationFailure(f"Condition of step {step_id} raised: {exc}") from exc

    async def _all_branches(self, branches: Iterable[Awaitable[Any]]) -> list[Any]:
        """Run concurrently; the first failure propagates, siblings keep running."""
        futures = [asyncio.ensure_future(branch) for branch in branches]
        try:
            return list(await asyncio.gather(*futures))
        except Exception:
            self._detach(future for future in futures if not future.done())
            raise

    async def _first_branch(self, branches: Iterable[Awaitable[Any]]) -> Any:
        """Settle with the first branch to finish, success or failure."""
        futures = [asyncio.ensure_future(branch) for branch in branches]
        if not futures:
            return None

        done, pending = await asyncio.wait(futures, return_when=asyncio.FIRST_COMPLETED)
        self._detach(pending)

        # Declaration order breaks ties between branches finishing together.
        winner = next(future for future in futures if future in done)
        for future in done:
            if future is not winner and not future.cancelled():
                future.exception()
        return winner.result()

    def _detach(self, futures: Iterable[asyncio.Future[Any]]) -> None:
        for future in futures:
            self._detached.add(future)
            future.add_done_callback(self._forget)

    def _forget(self, future: asyncio.Future[Any]) -> None:
        self._detached.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(f"Detached branch failed after its step settled: {exc}", exc_info=exc)
