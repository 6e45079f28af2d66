"""Orchestration models - task definitions, execution contexts, evaluations."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class DecompositionStrategy(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    RECURSIVE = "recursive"
    AUTO = "auto"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class EvaluationCriterion(BaseModel):
    """One named quality criterion for a task result."""

    description: str
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class ExpectedOutput(BaseModel):
    """Shape hints for a task's result."""

    model_config = ConfigDict(populate_by_name=True)

    output_schema: Any = Field(default=None, alias="schema")
    example: Any = None


class TaskDefinition(BaseModel):
    """A goal-level task handed to the orchestrator.

    ``max_attempts`` counts executions, the first one included; when unset
    the orchestrator's configured default applies.

    ``required_capabilities`` left unset means ``["general"]``; an explicit
    empty list is satisfied by any agent.
    """

    name: str
    description: str = ""
    goal: str = ""
    input: dict[str, Any] = Field(default_factory=dict)
    expected_output: ExpectedOutput | None = None
    required_capabilities: list[str] | None = None
    evaluation_criteria: dict[str, EvaluationCriterion] = Field(default_factory=dict)
    max_attempts: int | None = Field(default=None, ge=1)


class TaskAnalysis(BaseModel):
    complexity: str = "medium"
    estimated_time: str = "5m"
    decomposition_strategy: DecompositionStrategy | None = DecompositionStrategy.AUTO
    suggested_capabilities: list[str] = Field(default_factory=list)


class Evaluation(BaseModel):
    """Outcome of scoring a result.

    ``unmet`` lists criteria whose own threshold was missed; only the average
    ``score`` decides ``passed``.
    """

    passed: bool
    score: float
    criteria: dict[str, float] = Field(default_factory=dict)
    unmet: list[str] = Field(default_factory=list)


class LogEntry(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    level: str
    message: str
    data: Any = None


class ExecutionContext(BaseModel):
    """State of one ``execute_task`` invocation.

    A retry after a failed evaluation gets its own context whose
    ``parent_task_id`` points at the attempt before it.
    """

    task_id: str
    parent_task_id: str | None = None
    attempt: int = 1
    start_time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    input: Any = None

    intermediate_results: dict[str, Any] = Field(default_factory=dict)
    logs: list[LogEntry] = Field(default_factory=list)
    subtasks: list[str] = Field(default_factory=list)
    agents: dict[str, str] = Field(default_factory=dict)
    status: ExecutionStatus = ExecutionStatus.PENDING

    def log(self, level: str, message: str, data: Any = None) -> LogEntry:
        """Append a log entry and mirror it to the module logger."""
        entry = LogEntry(level=level, message=message, data=data)
        self.logs.append(entry)
        logger.log(
            getattr(logging, level.upper(), logging.INFO),
            message,
            extra={"task_id": self.task_id, "attempt": self.attempt},
        )
        return entry

    def finish(self, status: ExecutionStatus) -> None:
        self.status = status
        self.end_time = datetime.now(UTC)
