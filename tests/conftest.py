"""Test configuration and fixtures."""

import pytest

from agent_orchestrator.core.config import EvaluationConfig, OrchestratorConfig, WorkflowConfig
from agent_orchestrator.core.hooks import HookDispatcher
from agent_orchestrator.core.registry import AgentRegistry, TaskRegistry
from agent_orchestrator.orchestration.orchestrator import Orchestrator
from agent_orchestrator.workflow.engine import WorkflowEngine
from agent_orchestrator.workflow.interpreter import StepInterpreter


@pytest.fixture
def hooks() -> HookDispatcher:
    """Provide an empty hook dispatcher."""
    return HookDispatcher()


@pytest.fixture
def tasks(hooks: HookDispatcher) -> TaskRegistry:
    """Provide an empty task registry sharing the hook dispatcher."""
    return TaskRegistry(hooks)


@pytest.fixture
def agents(hooks: HookDispatcher) -> AgentRegistry:
    """Provide an empty agent registry sharing the hook dispatcher."""
    return AgentRegistry(hooks)


@pytest.fixture
def workflow_config() -> WorkflowConfig:
    """Provide interpreter defaults without real sleeps."""
    return WorkflowConfig(map_concurrency=5, retry_step_delay=0.0, retry_step_backoff=1.0)


@pytest.fixture
def evaluation_config() -> EvaluationConfig:
    """Provide a test evaluation configuration."""
    return EvaluationConfig(enabled=True, threshold=0.7, max_retries=2, verbose=True)


@pytest.fixture
def orchestrator_config(
    workflow_config: WorkflowConfig, evaluation_config: EvaluationConfig
) -> OrchestratorConfig:
    """Provide a test orchestrator configuration."""
    return OrchestratorConfig(
        log_level="DEBUG",
        debug=True,
        json_logs=False,
        workflow=workflow_config,
        evaluation=evaluation_config,
    )


@pytest.fixture
def interpreter(
    tasks: TaskRegistry, hooks: HookDispatcher, workflow_config: WorkflowConfig
) -> StepInterpreter:
    return StepInterpreter(tasks, hooks, workflow_config)


@pytest.fixture
def engine(
    tasks: TaskRegistry, hooks: HookDispatcher, workflow_config: WorkflowConfig
) -> WorkflowEngine:
    return WorkflowEngine(tasks, hooks, workflow_config)


@pytest.fixture
def orchestrator(
    agents: AgentRegistry, hooks: HookDispatcher, evaluation_config: EvaluationConfig
) -> Orchestrator:
    return Orchestrator(agents, hooks, evaluation_config)
