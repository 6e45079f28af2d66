"""Core package initialization."""

from agent_orchestrator.core.config import EvaluationConfig, OrchestratorConfig, WorkflowConfig
from agent_orchestrator.core.errors import (
    ExecutionFailure,
    NotFoundError,
    OrchestratorError,
    ValidationFailure,
)
from agent_orchestrator.core.hooks import HookDispatcher, HookName
from agent_orchestrator.core.registry import (
    Agent,
    AgentRegistry,
    AgentReply,
    AgentRequest,
    Task,
    TaskRegistry,
)

__all__ = [
    "Agent",
    "AgentRegistry",
    "AgentReply",
    "AgentRequest",
    "EvaluationConfig",
    "ExecutionFailure",
    "HookDispatcher",
    "HookName",
    "NotFoundError",
    "OrchestratorConfig",
    "OrchestratorError",
    "Task",
    "TaskRegistry",
    "ValidationFailure",
    "WorkflowConfig",
]
