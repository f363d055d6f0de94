"""Mutation notifications for presentation layers.

Every public mutating operation of the engine returns a ``ChangeSet`` and,
when an observer is injected, emits ``LayoutEvent``s describing what
happened. Neither depends on any UI framework.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from dag_grid.graph import Edge, NodeMove
from dag_grid.layout.types import PlacementStrategy


class EventKind(Enum):
    NODE_ADDED = "node_added"
    EDGE_ADDED = "edge_added"
    NODE_MOVED = "node_moved"
    PLACEMENT_SOLVED = "placement_solved"
    MOVE_SKIPPED = "move_skipped"
    LAYERING_SKIPPED = "layering_skipped"
    VALIDATION_FAILED = "validation_failed"
    CLEARED = "cleared"


@dataclass(frozen=True)
class LayoutEvent:
    kind: EventKind
    message: str
    node_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class LayoutObserver(Protocol):
    """Protocol for receivers of engine events."""

    def on_event(self, event: LayoutEvent) -> None:
        """Handle one event. Must not call back into the engine."""
        ...


@dataclass
class ChangeSet:
    """Delta produced by one public operation.

    ``moved`` lists every applied position change (solver displacements
    first, then layering). ``skipped_moves`` are layering changes that
    could not be applied. ``cycle`` holds the nodes left unordered when
    layering was aborted.
    """

    added_nodes: list[str] = field(default_factory=list)
    added_edges: list[Edge] = field(default_factory=list)
    moved: list[NodeMove] = field(default_factory=list)
    skipped_moves: list[NodeMove] = field(default_factory=list)
    strategy: PlacementStrategy | None = None
    cycle: list[str] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    overlaps_ok: bool = True
    topology_ok: bool = True

    @property
    def ok(self) -> bool:
        return self.overlaps_ok and self.topology_ok and not self.cycle and not self.skipped_moves
