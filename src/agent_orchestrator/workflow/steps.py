"""Workflow steps - a closed union of frozen variants keyed by StepType."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from .context import WorkflowContext

ContextPredicate: TypeAlias = Callable[["WorkflowContext"], bool | Awaitable[bool]]
InputSource: TypeAlias = str | Callable[["WorkflowContext"], Any]
RetryPredicate: TypeAlias = Callable[[Exception, int], bool | Awaitable[bool]]
Successor: TypeAlias = str | tuple[str, ...] | None


class StepType(str, Enum):
    TASK = "task"
    PARALLEL = "parallel"
    CONDITION = "condition"
    MAP = "map"
    RETRY = "retry"


def normalize_successor(next_: str | Sequence[str] | None) -> Successor:
    """Lists of successors are stored as tuples so steps stay hashable."""

    if next_ is None or isinstance(next_, str):
        return next_
    return tuple(next_)


@dataclass(frozen=True, slots=True)
class TaskStep:
    """Run a registered unit of work.

    ``input_map`` maps target keys to a source: a callable of the context, a
    ``steps.``-prefixed dotted path into the context, or a key of the
    workflow input. ``output_map`` maps result keys to dotted paths under
    ``context.output``; without it the whole result is merged in.
    ``retries`` / ``retry_delay`` form the fixed-delay inline retry policy.
    """

    id: str
    task_name: str
    input_map: Mapping[str, InputSource] | None = None
    output_map: Mapping[str, str] | None = None
    condition: ContextPredicate | None = None
    retries: int = 0
    retry_delay: float = 0.0
    next: Successor = None

    type = StepType.TASK


@dataclass(frozen=True, slots=True)
class ParallelStep:
    id: str
    branches: tuple[str, ...]
    wait_for_all: bool = True
    next: Successor = None

    type = StepType.PARALLEL


@dataclass(frozen=True, slots=True)
class ConditionStep:
    """Follow ``true_next`` or ``false_next``; there is no implicit re-merge."""

    id: str
    predicate: ContextPredicate
    true_next: str
    false_next: str
    next: Successor = None

    type = StepType.CONDITION


@dataclass(frozen=True, slots=True)
class MapStep:
    """Run ``iterator`` once per item, ``concurrency`` items per batch.

    ``concurrency`` of ``None`` uses the interpreter's configured default.
    """

    id: str
    items: str | Sequence[Any]
    iterator: str
    concurrency: int | None = None
    next: Successor = None

    type = StepType.MAP


@dataclass(frozen=True, slots=True)
class RetryStep:
    """Re-run another step with exponential backoff.

    Attempt ``n`` (0-indexed) waits ``delay * backoff_factor ** n`` before the
    next try. ``delay`` / ``backoff_factor`` of ``None`` use the configured
    defaults. ``should_retry(error, attempts)`` can stop retrying early.
    """

    id: str
    step_id: str
    max_retries: int
    delay: float | None = None
    backoff_factor: float | None = None
    should_retry: RetryPredicate | None = None
    next: Successor = None

    type = StepType.RETRY


Step: TypeAlias = TaskStep | ParallelStep | ConditionStep | MapStep | RetryStep
