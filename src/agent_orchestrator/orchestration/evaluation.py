"""Scoring aggregated task results against their evaluation criteria."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sized
from typing import Any

from agent_orchestrator.core.callables import call_maybe_async
from agent_orchestrator.core.config import EvaluationConfig

from .models import Evaluation, EvaluationCriterion, TaskDefinition

logger = logging.getLogger(__name__)

CriterionScorer = Callable[[str, EvaluationCriterion, Any], float | Awaitable[float]]


def presence_scorer(name: str, criterion: EvaluationCriterion, result: Any) -> float:
    """Default scorer: 1.0 for a non-empty result, 0.0 otherwise.

    Real deployments inject a scorer backed by an evaluation agent or model.
    """

    if result is None:
        return 0.0
    if isinstance(result, Sized) and len(result) == 0:
        return 0.0
    return 1.0


class Evaluator:
    """Averages per-criterion scores and compares them to the threshold."""

    def __init__(self, config: EvaluationConfig, scorer: CriterionScorer | None = None) -> None:
        self.config = config
        self.scorer = scorer or presence_scorer

    async def evaluate(self, task: TaskDefinition, result: Any) -> Evaluation:
        if not self.config.enabled or not task.evaluation_criteria:
            return Evaluation(passed=True, score=1.0)

        scores: dict[str, float] = {}
        unmet: list[str] = []
        for name, criterion in task.evaluation_criteria.items():
            raw = await call_maybe_async(self.scorer, name, criterion, result)
            score = min(max(float(raw), 0.0), 1.0)
            scores[name] = score
            if criterion.threshold is not None and score < criterion.threshold:
                unmet.append(name)

        average = sum(scores.values()) / len(scores)
        evaluation = Evaluation(
            passed=average >= self.config.threshold,
            score=average,
            criteria=scores,
            unmet=unmet,
        )
        logger.debug(
            f"Evaluated {task.name}: score={average:.3f} passed={evaluation.passed}",
            extra={"task": task.name},
        )
        return evaluation
