"""Capability-driven input aliasing for agents."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class InputAlias:
    """Copy ``source`` into ``target`` for agents tagged with ``capability``.

    Applies only when ``target`` is absent or falsy and ``source`` is set.
    """

    capability: str
    target: str
    source: str


DEFAULT_ALIASES: tuple[InputAlias, ...] = (
    InputAlias(capability="research", target="query", source="topic"),
    InputAlias(capability="visualize", target="concept", source="topic"),
    InputAlias(capability="summarize", target="text", source="content"),
)


def normalize_input(
    data: Mapping[str, Any],
    capabilities: Iterable[str],
    aliases: Iterable[InputAlias] = DEFAULT_ALIASES,
) -> dict[str, Any]:
    """Return a copy of ``data`` with the aliases for ``capabilities`` applied."""

    normalized = dict(data)
    tags = set(capabilities)
    for alias in aliases:
        if alias.capability not in tags:
            continue
        if not normalized.get(alias.target) and normalized.get(alias.source):
            normalized[alias.target] = normalized[alias.source]
    return normalized
