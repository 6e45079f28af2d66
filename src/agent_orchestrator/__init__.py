"""Agent Orchestrator.

Two entry points share one set of registries and hooks:
- ``WorkflowEngine`` runs declarative step graphs (task, parallel,
  condition, map and retry steps)
- ``Orchestrator`` decomposes a goal into capability-matched subtasks,
  dispatches them to agents and retries on a failed evaluation
"""

__version__ = "0.1.0"

from agent_orchestrator.core.config import OrchestratorConfig
from agent_orchestrator.core.hooks import HookDispatcher, HookName
from agent_orchestrator.core.registry import AgentRegistry, TaskRegistry
from agent_orchestrator.orchestration.orchestrator import Orchestrator
from agent_orchestrator.workflow.definition import WorkflowBuilder
from agent_orchestrator.workflow.engine import WorkflowEngine

__all__ = [
    "__version__",
    "AgentRegistry",
    "HookDispatcher",
    "HookName",
    "Orchestrator",
    "OrchestratorConfig",
    "TaskRegistry",
    "WorkflowBuilder",
    "WorkflowEngine",
]
