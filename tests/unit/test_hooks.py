"""Unit tests for the hook dispatcher."""

import pytest

from agent_orchestrator.core.hooks import HookDispatcher, HookName


@pytest.mark.asyncio
async def test_hooks_run_in_registration_order(hooks: HookDispatcher) -> None:
    calls: list[str] = []

    async def first(*args) -> None:
        calls.append("first")

    def second(*args) -> None:
        calls.append("second")

    hooks.add(HookName.TASK_START, first)
    hooks.add("onTaskStart", second)

    await hooks.emit(HookName.TASK_START, "task", {}, None)

    assert calls == ["first", "second"]


@pytest.mark.asyncio
async def test_hook_receives_positional_arguments(hooks: HookDispatcher) -> None:
    received: list[tuple] = []
    hooks.add(HookName.WORKFLOW_END, lambda *args: received.append(args))

    await hooks.emit(HookName.WORKFLOW_END, "definition", "context", {"total": 1})

    assert received == [("definition", "context", {"total": 1})]


@pytest.mark.asyncio
async def test_hook_failure_propagates(hooks: HookDispatcher) -> None:
    def broken(*args) -> None:
        raise RuntimeError("hook broke")

    hooks.add(HookName.TASK_END, broken)

    with pytest.raises(RuntimeError, match="hook broke"):
        await hooks.emit(HookName.TASK_END)


@pytest.mark.asyncio
async def test_emit_without_hooks_is_noop(hooks: HookDispatcher) -> None:
    await hooks.emit(HookName.EVALUATION_START, "task", "result")

    assert hooks.hooks(HookName.EVALUATION_START) == []


def test_unknown_hook_name_rejected(hooks: HookDispatcher) -> None:
    with pytest.raises(ValueError):
        hooks.add("onSomethingElse", lambda *args: None)


def test_hooks_returns_copy(hooks: HookDispatcher) -> None:
    def hook(*args) -> None:
        return None

    hooks.add(HookName.TASK_ERROR, hook)
    listed = hooks.hooks(HookName.TASK_ERROR)
    listed.clear()

    assert hooks.hooks(HookName.TASK_ERROR) == [hook]
