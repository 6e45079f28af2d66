#!/usr/bin/env python3
"""Workflow and orchestrator example.

This demonstrates using the library components directly:

* load settings from the environment / `.env`
* run a two-step workflow whose steps pass data through mappings
* decompose a goal across capability-tagged agents

The topic is passed as an argument.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from agent_orchestrator import (
    AgentRegistry,
    HookDispatcher,
    HookName,
    Orchestrator,
    OrchestratorConfig,
    TaskRegistry,
    WorkflowBuilder,
    WorkflowEngine,
)
from agent_orchestrator.orchestration import TaskDefinition


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the example workflow and task.")
    parser.add_argument("--topic", default="tides", help="Topic handed to the agents")
    parser.add_argument("--count", type=int, default=3, help="Number of records to fetch")
    return parser.parse_args(argv)


async def _fetch(value: dict, context: object) -> dict:
    return {"records": list(range(value["count"]))}


def _summarize(value: dict, context: object) -> dict:
    return {"total": sum(value["records"]), "count": len(value["records"])}


async def _researcher(request, reply) -> None:
    reply.send({"content": f"Notes about {request.body['query']}"})


async def _summarizer(request, reply) -> None:
    reply.send({"summary": request.body["text"][:40]})


async def _run(args: argparse.Namespace, config: OrchestratorConfig) -> None:
    hooks = HookDispatcher()
    hooks.add(
        HookName.WORKFLOW_STEP_END,
        lambda definition, step, context, result: print(f"  step {step.id} -> {result}"),
    )

    tasks = TaskRegistry(hooks)
    tasks.register("fetchRecords", _fetch, description="Produce some records")
    tasks.register("summarizeRecords", _summarize, description="Count and total records")

    definition = (
        WorkflowBuilder("records", "Record summary")
        .task("fetch", "fetchRecords", input_map={"count": "count"})
        .task(
            "summarize",
            "summarizeRecords",
            input_map={"records": "steps.fetch.records"},
            output_map={"total": "report.total", "count": "report.count"},
        )
        .sequence(["fetch", "summarize"])
        .build()
    )

    engine = WorkflowEngine(tasks, hooks, config.workflow)
    print(f"Running workflow {definition.name}")
    context = await engine.execute(definition, {"count": args.count})
    print(f"Output: {context.output}")

    agents = AgentRegistry(hooks)
    agents.register("researcher", _researcher, capabilities=["research"])
    agents.register("summarizer", _summarizer, capabilities=["summarize"])

    orchestrator = Orchestrator(agents, hooks, config.evaluation)
    task = TaskDefinition(
        name="brief",
        goal=f"Write a short brief about {args.topic}",
        required_capabilities=["research", "summarize"],
    )
    result = await orchestrator.execute_task(task, {"topic": args.topic})
    print(f"Brief: {result}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    config = OrchestratorConfig()
    config.setup_logging()

    asyncio.run(_run(args, config))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
