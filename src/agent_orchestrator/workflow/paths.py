"""Dotted-path access into workflow contexts and output dictionaries."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any

from agent_orchestrator.core.errors import ValidationFailure

STEPS_PREFIX = "steps."


def is_step_reference(source: object) -> bool:
    """True for sources such as ``"steps.fetch.value"``."""

    return isinstance(source, str) and source.startswith(STEPS_PREFIX)


def lookup(value: Any, key: str) -> Any:
    """Single-segment lookup: mapping key, sequence index, or attribute."""

    if isinstance(value, Mapping):
        return value.get(key)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if key.lstrip("-").isdigit():
            index = int(key)
            return value[index] if -len(value) <= index < len(value) else None
        return None
    return getattr(value, key, None)


def get_path(root: Any, path: str) -> Any:
    """Resolve ``a.b.c`` against mappings, sequences and attributes.

    A missing segment yields ``None`` instead of raising.
    """

    value = root
    for key in path.split("."):
        if value is None:
            return None
        value = lookup(value, key)
    return value


def set_path(target: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Write ``value`` at ``a.b.c`` inside ``target``.

    Missing intermediate dictionaries are created; siblings already present at
    every level are kept.

    Raises:
        ValidationFailure: If an intermediate segment holds a non-mapping value.
    """

    *parents, leaf = path.split(".")
    node = target
    walked: list[str] = []
    for key in parents:
        walked.append(key)
        child = node.get(key)
        if child is None:
            child = {}
            node[key] = child
        elif not isinstance(child, MutableMapping):
            raise ValidationFailure(
                f"Cannot write '{path}': '{'.'.join(walked)}' holds a {type(child).__name__}"
            )
        node = child
    node[leaf] = value
