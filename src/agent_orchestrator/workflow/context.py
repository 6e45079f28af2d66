"""Per-run workflow state - WorkflowContext and StepResults."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class StepResults(Mapping[str, Any]):
    """Step id -> stored result.

    Readable like a dict; the only write path is :meth:`record`, which the
    interpreter calls for the step that just finished. Concurrent branches
    therefore each write under their own step id and never through a
    sibling's key.
    """

    __slots__ = ("_results",)

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._results: dict[str, Any] = dict(initial or {})

    def record(self, step_id: str, result: Any) -> None:
        self._results[step_id] = result

    def copy(self) -> StepResults:
        return StepResults(self._results)

    def __getitem__(self, step_id: str) -> Any:
        return self._results[step_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        return f"StepResults({self._results!r})"


@dataclass
class WorkflowContext:
    """Mutable record threaded through one workflow run.

    ``output`` is a side accumulator filled by task output mappings; the
    traversal's final step result is stored separately in ``result``.
    """

    input: Any = None
    steps: StepResults = field(default_factory=StepResults)
    output: dict[str, Any] = field(default_factory=dict)
    current_step: str | None = None
    errors: dict[str, BaseException] = field(default_factory=dict)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    result: Any = None

    def fork_for_item(self, item: Any) -> WorkflowContext:
        """Sub-context for one map item.

        ``steps``, ``errors`` and ``metadata`` are shallow copies, ``input`` is
        the item and ``output`` starts empty. The parent stays reachable via
        ``metadata["parent_context"]``.
        """
        return WorkflowContext(
            input=item,
            steps=self.steps.copy(),
            output={},
            current_step=self.current_step,
            errors=dict(self.errors),
            start_time=self.start_time,
            metadata={**self.metadata, "parent_context": self},
        )

    @property
    def duration_ms(self) -> int | None:
        if self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() * 1000)
