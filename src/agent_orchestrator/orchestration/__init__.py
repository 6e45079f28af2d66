"""Goal-level orchestration: decompose, dispatch to agents, evaluate, retry."""

from agent_orchestrator.orchestration.evaluation import CriterionScorer, Evaluator, presence_scorer
from agent_orchestrator.orchestration.models import (
    DecompositionStrategy,
    Evaluation,
    EvaluationCriterion,
    ExecutionContext,
    ExecutionStatus,
    ExpectedOutput,
    LogEntry,
    TaskAnalysis,
    TaskDefinition,
)
from agent_orchestrator.orchestration.normalization import (
    DEFAULT_ALIASES,
    InputAlias,
    normalize_input,
)
from agent_orchestrator.orchestration.orchestrator import Orchestrator

__all__ = [
    "DEFAULT_ALIASES",
    "CriterionScorer",
    "DecompositionStrategy",
    "Evaluation",
    "EvaluationCriterion",
    "Evaluator",
    "ExecutionContext",
    "ExecutionStatus",
    "ExpectedOutput",
    "InputAlias",
    "LogEntry",
    "Orchestrator",
    "TaskAnalysis",
    "TaskDefinition",
    "normalize_input",
    "presence_scorer",
]
