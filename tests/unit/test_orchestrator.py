"""Unit tests for the goal-level orchestrator."""

import pytest

from agent_orchestrator.core.config import EvaluationConfig
from agent_orchestrator.core.errors import NotFoundError, ValidationFailure
from agent_orchestrator.core.hooks import HookDispatcher, HookName
from agent_orchestrator.core.registry import AgentRegistry
from agent_orchestrator.orchestration.models import (
    DecompositionStrategy,
    EvaluationCriterion,
    ExecutionStatus,
    TaskDefinition,
)
from agent_orchestrator.orchestration.orchestrator import (
    QUALITY_WARNING,
    RETRY_FEEDBACK,
    Orchestrator,
)


def _recording_agent(bodies: list, response):
    async def handler(request, reply) -> None:
        bodies.append(request.body)
        reply.send(response(request) if callable(response) else response)

    return handler


def test_decompose_one_subtask_per_capability(orchestrator: Orchestrator) -> None:
    task = TaskDefinition(
        name="report",
        goal="Explain tides",
        required_capabilities=["research", "summarize", "visualize"],
    )

    subtasks = orchestrator.decompose_task(task, {"topic": "tides"})

    assert [subtask.name for subtask in subtasks] == [
        "report_research",
        "report_summarize",
        "report_visualize",
    ]
    assert all(subtask.goal == "Explain tides" for subtask in subtasks)
    assert [subtask.required_capabilities for subtask in subtasks] == [
        ["research"],
        ["summarize"],
        ["visualize"],
    ]
    assert subtasks[0].description == "Handle research aspect of report"
    assert subtasks[0].input == {"topic": "tides"}


def test_decompose_keeps_simple_task_atomic(orchestrator: Orchestrator) -> None:
    single = TaskDefinition(name="lookup", required_capabilities=["research"])
    bare = TaskDefinition(name="chat")

    assert orchestrator.decompose_task(single, {}) == [single]
    assert orchestrator.decompose_task(bare, {}, DecompositionStrategy.SEQUENTIAL) == [bare]


@pytest.mark.asyncio
async def test_single_capability_task(agents: AgentRegistry, orchestrator: Orchestrator) -> None:
    bodies: list = []
    agents.register(
        "researcher",
        _recording_agent(bodies, {"findings": "spring tides"}),
        capabilities=["research"],
    )
    task = TaskDefinition(name="lookup", required_capabilities=["research"])

    result = await orchestrator.execute_task(task, {"topic": "tides"})

    assert result == {"findings": "spring tides"}
    assert bodies == [{"topic": "tides", "query": "tides"}]
    (context,) = orchestrator.contexts.values()
    assert context.status is ExecutionStatus.COMPLETED
    assert context.agents == {"lookup": "researcher"}
    assert context.end_time is not None


@pytest.mark.asyncio
async def test_subtasks_run_sequentially_with_accumulated_input(
    agents: AgentRegistry, orchestrator: Orchestrator
) -> None:
    research_bodies: list = []
    summary_bodies: list = []
    agents.register(
        "researcher",
        _recording_agent(research_bodies, {"content": "notes", "source": "web"}),
        capabilities=["research"],
    )
    agents.register(
        "summarizer",
        _recording_agent(summary_bodies, lambda request: {"summary": request.body["text"].upper()}),
        capabilities=["summarize"],
    )
    task = TaskDefinition(name="brief", required_capabilities=["research", "summarize"])

    result = await orchestrator.execute_task(task, {"topic": "tides"})

    assert result == {"content": "notes", "source": "web", "summary": "NOTES"}
    assert summary_bodies == [
        {"topic": "tides", "content": "notes", "source": "web", "text": "notes"}
    ]
    (context,) = orchestrator.contexts.values()
    assert context.subtasks == ["brief_research", "brief_summarize"]
    assert context.intermediate_results["brief_summarize"] == {"summary": "NOTES"}


def test_aggregate_results(orchestrator: Orchestrator) -> None:
    task = TaskDefinition(name="t", required_capabilities=["a", "b", "c"])
    subtasks = orchestrator.decompose_task(task, {})

    combined = orchestrator.aggregate_results(task, subtasks, [{"x": 1}, "plain", {"x": 2}])

    assert combined == {"x": 2, "t_b": "plain"}
    assert orchestrator.aggregate_results(task, subtasks[:1], ["only"]) == "only"


@pytest.mark.asyncio
async def test_no_capable_agent_fails_task(
    agents: AgentRegistry, hooks: HookDispatcher, orchestrator: Orchestrator
) -> None:
    failures: list = []
    hooks.add(
        HookName.ORCHESTRATOR_TASK_ERROR,
        lambda task, context, error: failures.append((task.name, type(error))),
    )
    agents.register("researcher", _recording_agent([], {}), capabilities=["research"])
    task = TaskDefinition(name="draw", required_capabilities=["visualize"])

    with pytest.raises(NotFoundError, match="visualize"):
        await orchestrator.execute_task(task, {})

    (context,) = orchestrator.contexts.values()
    assert context.status is ExecutionStatus.FAILED
    assert context.logs[-1].level == "error"
    assert failures == [("draw", NotFoundError)]


@pytest.mark.asyncio
async def test_agent_exception_is_not_retried(
    agents: AgentRegistry, orchestrator: Orchestrator
) -> None:
    calls: list = []

    def broken(request, reply) -> None:
        calls.append(1)
        reply.error(RuntimeError("model offline"))

    agents.register("worker", broken)
    task = TaskDefinition(
        name="job",
        evaluation_criteria={"quality": EvaluationCriterion(description="Good")},
        max_attempts=3,
    )

    with pytest.raises(RuntimeError, match="model offline"):
        await orchestrator.execute_task(task)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_failed_evaluation_retries_with_feedback(
    agents: AgentRegistry, hooks: HookDispatcher, evaluation_config: EvaluationConfig
) -> None:
    bodies: list = []
    scores = iter([0.2, 0.9])
    agents.register("worker", _recording_agent(bodies, {"draft": "text"}))
    orchestrator = Orchestrator(
        agents, hooks, evaluation_config, scorer=lambda name, criterion, result: next(scores)
    )
    task = TaskDefinition(
        name="essay",
        input={"topic": "tides"},
        evaluation_criteria={"quality": EvaluationCriterion(description="Good")},
    )

    result = await orchestrator.execute_task(task)

    assert result == {"draft": "text"}
    assert len(bodies) == 2
    previous = bodies[1]["_previousAttempt"]
    assert previous["result"] == {"draft": "text"}
    assert previous["feedback"] == RETRY_FEEDBACK
    assert previous["evaluation"]["score"] == pytest.approx(0.2)
    assert bodies[1]["topic"] == "tides"

    first, second = orchestrator.contexts.values()
    assert (first.attempt, second.attempt) == (1, 2)
    assert second.parent_task_id == first.task_id
    assert first.parent_task_id is None


@pytest.mark.asyncio
async def test_exhausted_attempts_return_annotated_result(
    agents: AgentRegistry, hooks: HookDispatcher, evaluation_config: EvaluationConfig
) -> None:
    bodies: list = []
    agents.register("worker", _recording_agent(bodies, "weak answer"))
    orchestrator = Orchestrator(
        agents, hooks, evaluation_config, scorer=lambda name, criterion, result: 0.1
    )
    task = TaskDefinition(
        name="answer",
        evaluation_criteria={"quality": EvaluationCriterion(description="Good")},
        max_attempts=3,
    )

    result = await orchestrator.execute_task(task, {})

    assert len(bodies) == 3
    assert result["result"] == "weak answer"
    assert result["_warning"] == QUALITY_WARNING
    assert result["_evaluation"]["passed"] is False
    assert all(
        context.status is ExecutionStatus.COMPLETED for context in orchestrator.contexts.values()
    )


@pytest.mark.asyncio
async def test_single_attempt_budget(
    agents: AgentRegistry, hooks: HookDispatcher, evaluation_config: EvaluationConfig
) -> None:
    bodies: list = []
    agents.register("worker", _recording_agent(bodies, {"draft": "x"}))
    orchestrator = Orchestrator(
        agents, hooks, evaluation_config, scorer=lambda name, criterion, result: 0.0
    )
    task = TaskDefinition(
        name="once",
        evaluation_criteria={"quality": EvaluationCriterion(description="Good")},
        max_attempts=1,
    )

    result = await orchestrator.execute_task(task, {})

    assert len(bodies) == 1
    assert result["draft"] == "x"
    assert "_warning" in result


@pytest.mark.asyncio
async def test_default_budget_comes_from_config(
    agents: AgentRegistry, hooks: HookDispatcher, evaluation_config: EvaluationConfig
) -> None:
    bodies: list = []
    agents.register("worker", _recording_agent(bodies, {"draft": "x"}))
    orchestrator = Orchestrator(
        agents, hooks, evaluation_config, scorer=lambda name, criterion, result: 0.0
    )
    task = TaskDefinition(
        name="default",
        evaluation_criteria={"quality": EvaluationCriterion(description="Good")},
    )

    await orchestrator.execute_task(task, {})

    assert len(bodies) == evaluation_config.max_retries


@pytest.mark.asyncio
async def test_orchestrator_hooks(
    agents: AgentRegistry, hooks: HookDispatcher, orchestrator: Orchestrator
) -> None:
    events: list[str] = []
    for name in (
        HookName.ORCHESTRATOR_TASK_START,
        HookName.AGENT_EXECUTE,
        HookName.AGENT_EXECUTE_COMPLETE,
        HookName.EVALUATION_START,
        HookName.EVALUATION_END,
        HookName.ORCHESTRATOR_TASK_END,
    ):
        hooks.add(name, lambda *args, name=name: events.append(name.value))
    agents.register("worker", _recording_agent([], {"ok": True}))

    await orchestrator.execute_task(TaskDefinition(name="hooked"), {})

    assert events == [
        "onOrchestratorTaskStart",
        "onAgentExecute",
        "onAgentExecuteComplete",
        "onEvaluationStart",
        "onEvaluationEnd",
        "onOrchestratorTaskEnd",
    ]


@pytest.mark.asyncio
async def test_define_task_and_run(agents: AgentRegistry, orchestrator: Orchestrator) -> None:
    agents.register("worker", _recording_agent([], lambda request: {"echo": request.body["q"]}))
    task = TaskDefinition(name="echo", input={"q": "default"})

    run_echo = orchestrator.define_task(task)

    assert await run_echo({"q": "given"}) == {"echo": "given"}
    assert await run_echo() == {"echo": "default"}
    assert await orchestrator.run(task) == {"echo": "default"}


@pytest.mark.asyncio
async def test_non_mapping_input_rejected(orchestrator: Orchestrator) -> None:
    with pytest.raises(ValidationFailure):
        await orchestrator.execute_task(TaskDefinition(name="bad"), ["not", "a", "mapping"])


def test_get_context_unknown(orchestrator: Orchestrator) -> None:
    with pytest.raises(NotFoundError):
        orchestrator.get_context("missing")


@pytest.mark.asyncio
async def test_empty_capabilities_match_any_agent(
    agents: AgentRegistry, orchestrator: Orchestrator
) -> None:
    """An explicit empty requirement is satisfied by a tagged agent."""
    agents.register("researcher", _recording_agent([], {"ok": True}), capabilities=["research"])
    task = TaskDefinition(name="chat", required_capabilities=[])

    result = await orchestrator.execute_task(task, {"q": 1})

    assert result == {"ok": True}
    (context,) = orchestrator.contexts.values()
    assert context.agents == {"chat": "researcher"}


@pytest.mark.asyncio
async def test_unset_capabilities_require_general(
    agents: AgentRegistry, orchestrator: Orchestrator
) -> None:
    agents.register("researcher", _recording_agent([], {"ok": True}), capabilities=["research"])

    with pytest.raises(NotFoundError, match="general"):
        await orchestrator.execute_task(TaskDefinition(name="chat"), {"q": 1})


@pytest.mark.asyncio
async def test_clear_contexts(agents: AgentRegistry, orchestrator: Orchestrator) -> None:
    agents.register("worker", _recording_agent([], {"ok": True}))
    task = TaskDefinition(name="job")

    await orchestrator.execute_task(task, {})
    await orchestrator.execute_task(task, {})

    assert orchestrator.clear_contexts() == 2
    assert orchestrator.contexts == {}
