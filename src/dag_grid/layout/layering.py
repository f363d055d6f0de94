"""Topological Layering Engine.

Recomputes every node's column from the DAG's partial order after a
structural change:

  1. Kahn's algorithm yields a topological order (or a CycleDetectedError).
  2. Each node's layer is one past its deepest predecessor, then adjusted by
     the SpatialConstraint recorded when the node was placed.
  3. Column changes are applied through the Position Map; a change that
     would collide with a node that is not moving is skipped and reported.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field

from dag_grid.errors import CycleDetectedError
from dag_grid.graph import GraphStore, NodeMove
from dag_grid.layout.types import SpatialConstraint
from dag_grid.positions import GridPosition

logger = logging.getLogger(__name__)

# ─── Topological Order ────────────────────────────────────────────────────────


def topological_order(store: GraphStore) -> list[str]:
    """Order every node so each edge points forward (Kahn's algorithm).

    Sources are seeded in node insertion order and successors are visited
    in edge insertion order, so the result is deterministic. Edges with an
    endpoint that is not a node are ignored.

    Raises CycleDetectedError listing the nodes that could not be ordered.
    """
    in_degree: dict[str, int] = {node_id: len(store.predecessors(node_id)) for node_id in store.node_ids}
    queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
    order: list[str] = []

    while queue:
        node_id = queue.popleft()
        order.append(node_id)
        for succ in store.successors(node_id):
            in_degree[succ] -= 1
            if in_degree[succ] == 0:
                queue.append(succ)

    if len(order) != len(in_degree):
        ordered = set(order)
        raise CycleDetectedError([node_id for node_id in in_degree if node_id not in ordered])

    logger.debug(f"Topological order: {' → '.join(order)}")
    return order


# ─── Layer Assignment ─────────────────────────────────────────────────────────


def resolve_layer(topological_layer: int, floor: int | None, constraint: SpatialConstraint | None) -> int:
    """Final layer for one node.

    ``floor`` is one past the deepest predecessor (None for a source). The
    recorded preferred layer wins when it lies within the constraint's
    bounds and does not undercut ``floor``; otherwise the topological layer
    is clamped into the bounds. Dependency order always beats a bound.
    """
    if constraint is None:
        return topological_layer

    preferred = constraint.preferred_layer
    # A source has no floor: only its bounds limit it, so the layer may be negative.
    if preferred is not None and constraint.admits(preferred) and (floor is None or preferred >= floor):
        return preferred

    layer = constraint.clamp(topological_layer)
    if floor is not None and layer < floor:
        layer = floor
    return layer


class LayerAssignment:
    """Result of layer assignment: each node is assigned a column.

    Attributes:
        layers: Maps node id → final layer.
        order: The topological order the layers were computed in.
    """

    def __init__(self, layers: dict[str, int], order: list[str]) -> None:
        self.layers = layers
        self.order = order

    @classmethod
    def assign(
        cls,
        store: GraphStore,
        spatial_constraints: Mapping[str, SpatialConstraint] | None = None,
    ) -> LayerAssignment:
        """Assign layers in topological order.

        A node with no predecessors sits at layer 0; any other node at
        ``1 + max(predecessor layers)``, before spatial constraints apply.
        """
        spatial_constraints = spatial_constraints or {}
        order = topological_order(store)
        layers: dict[str, int] = {}

        for node_id in order:
            preds = store.predecessors(node_id)
            floor = 1 + max(layers[p] for p in preds) if preds else None
            topological_layer = floor if floor is not None else 0
            constraint = spatial_constraints.get(node_id)
            layers[node_id] = resolve_layer(topological_layer, floor, constraint)
            if constraint is not None and layers[node_id] != topological_layer:
                logger.debug(
                    f"Spatial constraint on '{node_id}' ({constraint.reason}): "
                    f"layer {topological_layer} → {layers[node_id]}"
                )

        return cls(layers=layers, order=order)


# ─── Applying Layers ──────────────────────────────────────────────────────────


@dataclass
class LayeringReport:
    moved: list[NodeMove] = field(default_factory=list)
    skipped: list[NodeMove] = field(default_factory=list)


def apply_layers(store: GraphStore, layers: Mapping[str, int]) -> LayeringReport:
    """Move every node whose column differs from its layer, keeping its row.

    Moves into free cells are applied first, repeatedly, so a row of nodes
    shifting together resolves in any order. Moves blocked by a node that
    is not moving are skipped. Whatever is left forms closed rotations and
    is applied as one atomic batch.
    """
    report = LayeringReport()
    pending: list[NodeMove] = []
    for node_id, layer in layers.items():
        node = store.find_node(node_id)
        if node is not None and node.col != layer:
            pending.append(NodeMove(node_id, node.position, GridPosition(layer, node.row)))

    while pending:
        progressed = False
        for move in list(pending):
            if not store.positions.is_occupied(move.to_position) and store.move_node(move.node_id, move.to_position):
                logger.debug(f"Adjusted column: {move}")
                report.moved.append(move)
                pending.remove(move)
                progressed = True
        if progressed:
            continue

        movers = {move.node_id for move in pending}
        blocked = [move for move in pending if store.positions.occupant(move.to_position) not in movers]
        if blocked:
            for move in blocked:
                logger.warning(f"Skipping column change {move}: target held by a node that is not moving")
                report.skipped.append(move)
                pending.remove(move)
            continue

        if store.move_nodes(pending):
            report.moved.extend(pending)
        else:
            for move in pending:
                logger.warning(f"Skipping column change {move}: rotation could not be applied")
            report.skipped.extend(pending)
        pending = []

    return report


def relayer(
    store: GraphStore,
    spatial_constraints: Mapping[str, SpatialConstraint] | None = None,
) -> LayeringReport:
    """Recompute and apply layers. Raises CycleDetectedError, leaving positions untouched."""
    assignment = LayerAssignment.assign(store, spatial_constraints)
    return apply_layers(store, assignment.layers)
