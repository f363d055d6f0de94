"""Shared types for placement: intents, constraints, strategies and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from dag_grid.graph import NodeMove
from dag_grid.positions import GridPosition

# ─── Intent ───────────────────────────────────────────────────────────────────


class PlacementType(Enum):
    ADJACENT_DOWNSTREAM = "adjacent_downstream"
    ADJACENT_UPSTREAM = "adjacent_upstream"
    DISCONNECTED = "disconnected"


class PlacementPriority(Enum):
    USER_INTENT = "user_intent"  # preserve the user's spatial expectation
    TOPOLOGICAL = "topological"
    OPTIMIZATION = "optimization"


@dataclass(frozen=True)
class PlacementIntent:
    """Declarative request driving one insertion."""

    type: PlacementType
    anchor: str | None
    new_node: str
    priority: PlacementPriority = PlacementPriority.USER_INTENT
    reason: str = ""

    @classmethod
    def downstream_of(cls, anchor: str, new_node: str) -> PlacementIntent:
        return cls(
            type=PlacementType.ADJACENT_DOWNSTREAM,
            anchor=anchor,
            new_node=new_node,
            reason=f"User requested '{new_node}' downstream of '{anchor}'",
        )

    @classmethod
    def upstream_of(cls, anchor: str, new_node: str) -> PlacementIntent:
        return cls(
            type=PlacementType.ADJACENT_UPSTREAM,
            anchor=anchor,
            new_node=new_node,
            reason=f"User requested '{new_node}' upstream of '{anchor}'",
        )

    @classmethod
    def disconnected(cls, new_node: str) -> PlacementIntent:
        return cls(
            type=PlacementType.DISCONNECTED,
            anchor=None,
            new_node=new_node,
            reason=f"User requested disconnected node '{new_node}'",
        )


# ─── Constraints ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TopologicalConstraint:
    """``before`` must sit in a strictly smaller column than ``after``."""

    before: str
    after: str
    reason: str = ""


@dataclass(frozen=True)
class ProximityConstraint:
    node: str
    preferred_position: GridPosition
    tolerance: int
    reason: str = ""


@dataclass(frozen=True)
class NodeLock:
    node_id: str
    reason: str = ""


@dataclass
class PlacementConstraints:
    """Constraints derived from one intent.

    ``hard`` must hold, ``soft`` are preferences, ``locks`` name nodes that
    must not move while the intent is applied.
    """

    hard: list[TopologicalConstraint] = field(default_factory=list)
    soft: list[ProximityConstraint] = field(default_factory=list)
    locks: list[NodeLock] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.hard and not self.soft

    @property
    def locked_ids(self) -> set[str]:
        return {lock.node_id for lock in self.locks}

    def preferred_for(self, node_id: str) -> ProximityConstraint | None:
        for constraint in self.soft:
            if constraint.node == node_id:
                return constraint
        return None


@dataclass(frozen=True)
class SpatialConstraint:
    """Layer bounds recorded for a node when it is placed.

    Consulted by every later layering pass so a node's relative ordering
    intent survives insertions elsewhere in the graph.
    """

    min_layer: int | None = None
    max_layer: int | None = None
    preferred_layer: int | None = None
    reason: str = ""

    def admits(self, layer: int) -> bool:
        if self.min_layer is not None and layer < self.min_layer:
            return False
        if self.max_layer is not None and layer > self.max_layer:
            return False
        return True

    def clamp(self, layer: int) -> int:
        if self.min_layer is not None and layer < self.min_layer:
            layer = self.min_layer
        if self.max_layer is not None and layer > self.max_layer:
            layer = self.max_layer
        return layer

    def shifted(self, delta: int) -> SpatialConstraint:
        """The same constraint translated ``delta`` columns east."""

        def move(value: int | None) -> int | None:
            return None if value is None else value + delta

        return SpatialConstraint(
            min_layer=move(self.min_layer),
            max_layer=move(self.max_layer),
            preferred_layer=move(self.preferred_layer),
            reason=self.reason,
        )


# ─── Solver Results ───────────────────────────────────────────────────────────


class PlacementStrategy(Enum):
    """Solver strategies. Declaration order is the order they are tried."""

    EXACT_POSITION = "exact_position"
    ADJACENT_ALTERNATIVES = "adjacent_alternatives"
    ROW_ALTERNATIVES = "row_alternatives"
    MINIMAL_DISPLACEMENT = "minimal_displacement"
    STRATEGIC_ANCHOR_SHIFT = "strategic_anchor_shift"
    FALLBACK_SEARCH = "fallback_search"
    DISTANT_FALLBACK = "distant_fallback"


@dataclass(frozen=True)
class NodeDisplacement:
    """A secondary node the solver wants moved to make room."""

    node_id: str
    from_position: GridPosition
    to_position: GridPosition
    reason: str = ""

    def as_move(self) -> NodeMove:
        return NodeMove(self.node_id, self.from_position, self.to_position)


@dataclass
class PlacementResult:
    position: GridPosition | None
    strategy: PlacementStrategy
    displacements: list[NodeDisplacement] = field(default_factory=list)
    success: bool = False
    reason: str = ""

    @classmethod
    def failed(cls, strategy: PlacementStrategy, reason: str) -> PlacementResult:
        return cls(position=None, strategy=strategy, success=False, reason=reason)
