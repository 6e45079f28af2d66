"""Workflow definitions and the fluent builder that produces them."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from agent_orchestrator.core.errors import NotFoundError, ValidationFailure

from .steps import (
    ConditionStep,
    ContextPredicate,
    InputSource,
    MapStep,
    ParallelStep,
    RetryPredicate,
    RetryStep,
    Step,
    TaskStep,
    normalize_successor,
)

CompletedHandler = Callable[[Any, Any], Any]
ErrorHandler = Callable[[BaseException, Any], Any]


@dataclass(frozen=True, slots=True)
class WorkflowDefinition:
    """Immutable step graph.

    Traversal order is graph order from ``entrypoint``; the order of
    ``steps`` carries no meaning.
    """

    id: str
    name: str
    steps: Mapping[str, Step]
    entrypoint: str
    description: str | None = None
    input_schema: Any = None
    output_schema: Any = None
    tags: tuple[str, ...] = ()
    on_completed: tuple[CompletedHandler, ...] = ()
    on_error: tuple[ErrorHandler, ...] = ()

    def step(self, step_id: str) -> Step:
        """Return a step by id.

        Raises:
            NotFoundError: If the id is not part of this workflow.
        """
        try:
            return self.steps[step_id]
        except KeyError:
            raise NotFoundError(f"Step {step_id} not found in workflow {self.id}") from None

    def with_step(self, step: Step) -> WorkflowDefinition:
        """Transient copy with ``step`` replacing the step of the same id."""
        steps = dict(self.steps)
        steps[step.id] = step
        return dataclasses.replace(self, steps=MappingProxyType(steps))


class WorkflowBuilder:
    """Fluent builder for :class:`WorkflowDefinition`.

    Example:
        >>> definition = (
        ...     WorkflowBuilder("report")
        ...     .task("fetch", "fetchData")
        ...     .task("format", "formatData", input_map={"value": "steps.fetch.value"})
        ...     .sequence(["fetch", "format"])
        ...     .build()
        ... )

    The first declared step becomes the entrypoint unless :meth:`entry` is
    called. Successors, branches and task names are resolved only when the
    workflow runs.
    """

    def __init__(self, workflow_id: str, name: str | None = None) -> None:
        self._id = workflow_id
        self._name = name or workflow_id
        self._steps: dict[str, Step] = {}
        self._entrypoint: str | None = None
        self._description: str | None = None
        self._input_schema: Any = None
        self._output_schema: Any = None
        self._tags: list[str] = []
        self._on_completed: list[CompletedHandler] = []
        self._on_error: list[ErrorHandler] = []

    def _add(self, step: Step) -> WorkflowBuilder:
        if step.id in self._steps:
            raise ValidationFailure(f"Step {step.id} already defined in workflow {self._id}")
        self._steps[step.id] = step
        return self

    def _require(self, step_id: str) -> Step:
        try:
            return self._steps[step_id]
        except KeyError:
            raise NotFoundError(f"Step {step_id} not found in workflow {self._id}") from None

    def task(
        self,
        step_id: str,
        task_name: str,
        *,
        input_map: Mapping[str, InputSource] | None = None,
        output_map: Mapping[str, str] | None = None,
        condition: ContextPredicate | None = None,
        retries: int = 0,
        retry_delay: float = 0.0,
        next: str | Sequence[str] | None = None,  # noqa: A002
    ) -> WorkflowBuilder:
        if retries < 0:
            raise ValidationFailure(f"Step {step_id}: retries must be >= 0")
        return self._add(
            TaskStep(
                id=step_id,
                task_name=task_name,
                input_map=MappingProxyType(dict(input_map)) if input_map is not None else None,
                output_map=MappingProxyType(dict(output_map)) if output_map is not None else None,
                condition=condition,
                retries=retries,
                retry_delay=retry_delay,
                next=normalize_successor(next),
            )
        )

    def parallel(
        self,
        step_id: str,
        branches: Sequence[str],
        *,
        wait_for_all: bool = True,
        next: str | Sequence[str] | None = None,  # noqa: A002
    ) -> WorkflowBuilder:
        return self._add(
            ParallelStep(
                id=step_id,
                branches=tuple(branches),
                wait_for_all=wait_for_all,
                next=normalize_successor(next),
            )
        )

    def condition(
        self,
        step_id: str,
        predicate: ContextPredicate,
        *,
        true_next: str,
        false_next: str,
    ) -> WorkflowBuilder:
        return self._add(
            ConditionStep(
                id=step_id, predicate=predicate, true_next=true_next, false_next=false_next
            )
        )

    def map(
        self,
        step_id: str,
        items: str | Sequence[Any],
        iterator: str,
        *,
        concurrency: int | None = None,
        next: str | Sequence[str] | None = None,  # noqa: A002
    ) -> WorkflowBuilder:
        if not isinstance(items, str):
            items = tuple(items)
        return self._add(
            MapStep(
                id=step_id,
                items=items,
                iterator=iterator,
                concurrency=concurrency,
                next=normalize_successor(next),
            )
        )

    def retry(
        self,
        step_id: str,
        target: str,
        *,
        max_retries: int,
        delay: float | None = None,
        backoff_factor: float | None = None,
        should_retry: RetryPredicate | None = None,
        next: str | Sequence[str] | None = None,  # noqa: A002
    ) -> WorkflowBuilder:
        if max_retries < 0:
            raise ValidationFailure(f"Step {step_id}: max_retries must be >= 0")
        return self._add(
            RetryStep(
                id=step_id,
                step_id=target,
                max_retries=max_retries,
                delay=delay,
                backoff_factor=backoff_factor,
                should_retry=should_retry,
                next=normalize_successor(next),
            )
        )

    def then(self, step_id: str, next: str | Sequence[str] | None) -> WorkflowBuilder:  # noqa: A002
        """Set the successor of an already declared step (a list fans out)."""
        step = self._require(step_id)
        self._steps[step_id] = dataclasses.replace(step, next=normalize_successor(next))
        return self

    def sequence(self, step_ids: Sequence[str]) -> WorkflowBuilder:
        """Link ``step_ids`` one after another."""
        if not step_ids:
            return self
        for step_id in step_ids:
            self._require(step_id)
        for current, following in zip(step_ids, step_ids[1:]):
            self.then(current, following)
        if self._entrypoint is None:
            self._entrypoint = step_ids[0]
        return self

    def entry(self, step_id: str) -> WorkflowBuilder:
        self._entrypoint = step_id
        return self

    def describe(self, description: str) -> WorkflowBuilder:
        self._description = description
        return self

    def input(self, schema: Any) -> WorkflowBuilder:  # noqa: A003
        self._input_schema = schema
        return self

    def output(self, schema: Any) -> WorkflowBuilder:
        self._output_schema = schema
        return self

    def tag(self, *tags: str) -> WorkflowBuilder:
        self._tags.extend(tags)
        return self

    def on_completed(self, handler: CompletedHandler) -> WorkflowBuilder:
        """Called with ``(output, context)`` after a successful run."""
        self._on_completed.append(handler)
        return self

    def on_error(self, handler: ErrorHandler) -> WorkflowBuilder:
        """Called with ``(error, context)`` before the error is re-raised."""
        self._on_error.append(handler)
        return self

    def build(self) -> WorkflowDefinition:
        """Freeze the current state into a definition.

        Raises:
            ValidationFailure: If no step has been declared.
        """
        if not self._steps:
            raise ValidationFailure(f"Workflow {self._id} has no steps")
        entrypoint = self._entrypoint or next(iter(self._steps))
        return WorkflowDefinition(
            id=self._id,
            name=self._name,
            steps=MappingProxyType(dict(self._steps)),
            entrypoint=entrypoint,
            description=self._description,
            input_schema=self._input_schema,
            output_schema=self._output_schema,
            tags=tuple(self._tags),
            on_completed=tuple(self._on_completed),
            on_error=tuple(self._on_error),
        )
