"""Error taxonomy shared by the workflow interpreter and the orchestrator."""

from __future__ import annotations


class OrchestratorError(Exception):
    """Base class for errors raised by the engine itself.

    Errors raised by user-supplied units of work are never wrapped; they
    propagate with their original type.
    """


class NotFoundError(OrchestratorError, LookupError):
    """An unknown step id, task name, agent name or capability set."""


class ValidationFailure(OrchestratorError, ValueError):
    """Malformed definitions, bad map item sources, or a raising predicate."""


class ExecutionFailure(OrchestratorError, RuntimeError):
    """An executor failed without raising an exception of its own."""
