"""Declarative workflows: step graph definitions and their interpreter."""

from agent_orchestrator.workflow.context import StepResults, WorkflowContext
from agent_orchestrator.workflow.definition import WorkflowBuilder, WorkflowDefinition
from agent_orchestrator.workflow.engine import WorkflowEngine
from agent_orchestrator.workflow.interpreter import StepInterpreter
from agent_orchestrator.workflow.steps import (
    ConditionStep,
    MapStep,
    ParallelStep,
    RetryStep,
    Step,
    StepType,
    TaskStep,
)

__all__ = [
    "ConditionStep",
    "MapStep",
    "ParallelStep",
    "RetryStep",
    "Step",
    "StepInterpreter",
    "StepResults",
    "StepType",
    "TaskStep",
    "WorkflowBuilder",
    "WorkflowContext",
    "WorkflowDefinition",
    "WorkflowEngine",
]
