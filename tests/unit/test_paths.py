"""Unit tests for dotted-path helpers."""

import pytest

from agent_orchestrator.core.errors import ValidationFailure
from agent_orchestrator.workflow.context import WorkflowContext
from agent_orchestrator.workflow.paths import get_path, is_step_reference, lookup, set_path


def test_get_path_reads_step_results() -> None:
    context = WorkflowContext(input={})
    context.steps.record("fetch", {"value": 7, "items": [1, 2]})

    assert get_path(context, "steps.fetch.value") == 7
    assert get_path(context, "steps.fetch.items.1") == 2


def test_get_path_missing_segment_is_none() -> None:
    context = WorkflowContext(input={})

    assert get_path(context, "steps.missing.value") is None
    assert get_path({"a": {"b": 1}}, "a.c.d") is None
    assert get_path({"a": [1]}, "a.5") is None


def test_lookup_handles_mappings_sequences_and_attributes() -> None:
    class Holder:
        value = 3

    assert lookup({"k": 1}, "k") == 1
    assert lookup(["x", "y"], "1") == "y"
    assert lookup(Holder(), "value") == 3
    assert lookup(None, "anything") is None


def test_set_path_preserves_siblings() -> None:
    target: dict = {"a": {"b": {"x": 1}}}

    set_path(target, "a.b.c", 2)

    assert target == {"a": {"b": {"x": 1, "c": 2}}}


def test_set_path_creates_missing_intermediates() -> None:
    target: dict = {"a": None}

    set_path(target, "a.b.c", "deep")

    assert target == {"a": {"b": {"c": "deep"}}}


def test_set_path_rejects_scalar_intermediate() -> None:
    target: dict = {"a": 5}

    with pytest.raises(ValidationFailure):
        set_path(target, "a.b", 1)


def test_is_step_reference() -> None:
    assert is_step_reference("steps.fetch.value")
    assert not is_step_reference("value")
    assert not is_step_reference(42)
