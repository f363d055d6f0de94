"""Public facade of the grid layout engine.

Each intent-driven insertion runs the full pipeline:

    generate constraints → solve → apply (atomically) → re-layer → validate

Low-level primitives (``add_node``, ``add_edge``) bypass the solver but still
re-layer and validate. Every mutating operation returns a ``ChangeSet``.
All operations are synchronous and must not be called re-entrantly (for
example from inside an observer callback).
"""

from __future__ import annotations

import logging
from dataclasses import replace

from dag_grid import validator
from dag_grid.config import LayoutSettings
from dag_grid.config import settings as default_settings
from dag_grid.errors import CycleDetectedError, DuplicateNodeError, PositionConflictError, UnknownAnchorError
from dag_grid.events import ChangeSet, EventKind, LayoutEvent, LayoutObserver
from dag_grid.graph import Edge, GraphStore, Node
from dag_grid.layout.intent import generate_constraints
from dag_grid.layout.layering import relayer
from dag_grid.layout.solver import PlacementSolver
from dag_grid.layout.types import (
    PlacementConstraints,
    PlacementIntent,
    PlacementResult,
    PlacementStrategy,
    PlacementType,
    SpatialConstraint,
)
from dag_grid.positions import GridPosition

logger = logging.getLogger(__name__)


class GridLayoutEngine:
    """Incrementally builds a DAG on an integer grid.

    Upstream nodes always end up strictly west of their downstream nodes
    and no two nodes ever share a cell.

    Example:
        engine = GridLayoutEngine()
        engine.add_node(Node("C", col=1, row=2))
        engine.add_node_downstream("N1", "C")
        engine.find_node("N1").position   # GridPosition(col=2, row=2)
    """

    def __init__(self, settings: LayoutSettings | None = None, observer: LayoutObserver | None = None) -> None:
        self.settings = settings or default_settings
        self.observer = observer
        self._store = GraphStore()
        self._solver = PlacementSolver(self._store, self.settings)
        self._spatial_constraints: dict[str, SpatialConstraint] = {}

    # ─── Queries ─────────────────────────────────────────────────────────────

    @property
    def nodes(self) -> list[Node]:
        """Copies of every node, in insertion order."""
        return [replace(node) for node in self._store]

    @property
    def edges(self) -> list[Edge]:
        return self._store.edges

    def find_node(self, node_id: str) -> Node | None:
        node = self._store.find_node(node_id)
        return replace(node) if node is not None else None

    def is_position_occupied(self, position: GridPosition) -> bool:
        return self._store.positions.is_occupied(position)

    def spatial_constraint(self, node_id: str) -> SpatialConstraint | None:
        return self._spatial_constraints.get(node_id)

    def position_map_dump(self) -> list[str]:
        return self._store.positions.dump()

    def validate_no_overlaps(self) -> bool:
        return validator.validate_no_overlaps(self._store)

    def validate_topological_order(self) -> bool:
        return validator.validate_topological_order(self._store)

    def validation_errors(self) -> list[str]:
        return validator.overlap_errors(self._store) + validator.topology_errors(self._store)

    # ─── Low-level Primitives ────────────────────────────────────────────────

    def add_node(self, node: Node) -> ChangeSet:
        """Insert ``node`` at its own cell, bypassing the solver.

        Raises PositionConflictError (cell taken) or DuplicateNodeError; the
        graph is unchanged in both cases.
        """
        record = replace(node)
        self._store.add_node(record)
        self._spatial_constraints[record.id] = SpatialConstraint(
            preferred_layer=record.col,
            reason=f"placed directly at column {record.col}",
        )
        change = ChangeSet(added_nodes=[record.id])
        self._emit(EventKind.NODE_ADDED, f"Added '{record.id}' at {record.position}", record.id, position=record.position)
        return self._finish(change)

    def add_edge(self, source: str, target: str) -> ChangeSet:
        """Record ``source → target``. Topology is checked afterwards, not here."""
        change = ChangeSet()
        is_new = not self._store.digraph.has_edge(source, target)
        edge = self._store.add_edge(source, target)
        if is_new:
            change.added_edges.append(edge)
            self._emit(EventKind.EDGE_ADDED, f"Created edge {edge}", edge=edge)
        return self._finish(change)

    # ─── Intent-driven Insertion ─────────────────────────────────────────────

    def add_node_upstream(self, new_id: str, anchor_id: str) -> ChangeSet:
        return self._place(PlacementIntent.upstream_of(anchor_id, new_id))

    def add_node_downstream(self, new_id: str, anchor_id: str) -> ChangeSet:
        return self._place(PlacementIntent.downstream_of(anchor_id, new_id))

    def add_disconnected_node(self, node_id: str) -> ChangeSet:
        """Place a node with no edges at the start of an empty row below the graph."""
        return self._place(PlacementIntent.disconnected(node_id))

    def clear(self) -> ChangeSet:
        self._store.clear()
        self._spatial_constraints.clear()
        self._emit(EventKind.CLEARED, "Graph cleared")
        return ChangeSet()

    # ─── Pipeline ────────────────────────────────────────────────────────────

    def _place(self, intent: PlacementIntent) -> ChangeSet:
        logger.info(f"Placement start: {intent.reason}")
        if intent.new_node in self._store:
            raise DuplicateNodeError(intent.new_node)

        constraints = generate_constraints(intent, self._store)
        if intent.type is not PlacementType.DISCONNECTED and constraints.is_empty:
            raise UnknownAnchorError(intent.anchor, intent.new_node)

        result, node = self._commit(intent, constraints)
        change = ChangeSet(
            added_nodes=[node.id],
            moved=[d.as_move() for d in result.displacements],
            strategy=result.strategy,
        )
        self._emit(
            EventKind.PLACEMENT_SOLVED,
            f"Placed '{node.id}' at {node.position} using {result.strategy.value}",
            node.id,
            strategy=result.strategy,
            reason=result.reason,
        )
        for displacement in result.displacements:
            constraint = self._spatial_constraints.get(displacement.node_id)
            if constraint is not None:
                delta = displacement.to_position.col - displacement.from_position.col
                self._spatial_constraints[displacement.node_id] = constraint.shifted(delta)
            self._emit(
                EventKind.NODE_MOVED,
                f"Displaced {displacement.as_move()}",
                displacement.node_id,
                move=displacement.as_move(),
            )
        self._emit(EventKind.NODE_ADDED, f"Added '{node.id}' at {node.position}", node.id, position=node.position)

        edge = self._connect(intent)
        if edge is not None:
            change.added_edges.append(edge)
            self._emit(EventKind.EDGE_ADDED, f"Created edge {edge}", edge=edge)
        self._spatial_constraints[node.id] = self._record_constraint(intent, node)

        self._finish(change)
        logger.info(f"Placement complete: '{node.id}' at {self._store.find_node(node.id).position}")
        return change

    def _commit(self, intent: PlacementIntent, constraints: PlacementConstraints) -> tuple[PlacementResult, Node]:
        """Solve and apply atomically; a result that cannot be applied makes
        the solver retry without that strategy.
        """
        skip: set[PlacementStrategy] = set()
        while True:
            result = self._solver.solve(intent, constraints, frozenset(skip))
            node = Node(intent.new_node, result.position.col, result.position.row)
            moves = [d.as_move() for d in result.displacements]
            if self._store.place_with_displacements(node, moves):
                return result, node
            if result.strategy is PlacementStrategy.DISTANT_FALLBACK:
                raise PositionConflictError(node.id, node.position, self._store.positions.occupant(node.position))
            logger.warning(f"Could not apply {result.strategy.value} result; trying remaining strategies")
            skip.add(result.strategy)

    def _connect(self, intent: PlacementIntent) -> Edge | None:
        if intent.type is PlacementType.ADJACENT_DOWNSTREAM:
            return self._store.add_edge(intent.anchor, intent.new_node)
        if intent.type is PlacementType.ADJACENT_UPSTREAM:
            return self._store.add_edge(intent.new_node, intent.anchor)
        return None

    def _record_constraint(self, intent: PlacementIntent, node: Node) -> SpatialConstraint:
        """Layer bounds that keep ``node`` on the requested side of its anchor.

        Taken after displacements so the bound reflects the anchor's new column.
        """
        if intent.type is PlacementType.DISCONNECTED:
            return SpatialConstraint(preferred_layer=node.col, reason="disconnected placement")
        anchor = self._store.find_node(intent.anchor)
        if intent.type is PlacementType.ADJACENT_DOWNSTREAM:
            return SpatialConstraint(
                min_layer=anchor.col + 1,
                preferred_layer=node.col,
                reason=f"downstream of '{anchor.id}' at layer {anchor.col}",
            )
        return SpatialConstraint(
            max_layer=anchor.col - 1,
            preferred_layer=node.col,
            reason=f"upstream of '{anchor.id}' at layer {anchor.col}",
        )

    def _finish(self, change: ChangeSet) -> ChangeSet:
        """Re-layer, then validate; outcomes are folded into ``change``."""
        try:
            report = relayer(self._store, self._spatial_constraints)
        except CycleDetectedError as exc:
            logger.error(f"Layering skipped: {exc}")
            change.cycle = exc.remaining
            change.issues.append(str(exc))
            self._emit(EventKind.LAYERING_SKIPPED, str(exc), remaining=exc.remaining)
        else:
            change.moved.extend(report.moved)
            change.skipped_moves.extend(report.skipped)
            for move in report.moved:
                self._emit(EventKind.NODE_MOVED, f"Re-layered {move}", move.node_id, move=move)
            for move in report.skipped:
                message = f"Column change skipped for {move}"
                change.issues.append(message)
                self._emit(EventKind.MOVE_SKIPPED, message, move.node_id, move=move)

        if self.settings.validate_after_mutation:
            overlap = validator.overlap_errors(self._store)
            topology = validator.topology_errors(self._store)
            change.overlaps_ok = not overlap
            change.topology_ok = not topology
            for error in overlap + topology:
                logger.error(f"Validation failed: {error}")
                change.issues.append(error)
                self._emit(EventKind.VALIDATION_FAILED, error)

        if self.settings.dump_position_map:
            logger.debug("=== POSITION MAP ===\n" + ("\n".join(self._store.positions.dump()) or "(empty)"))
        return change

    def _emit(self, kind: EventKind, message: str, node_id: str | None = None, **data) -> None:
        if self.observer is None:
            return
        try:
            self.observer.on_event(LayoutEvent(kind=kind, message=message, node_id=node_id, data=data))
        except Exception:
            logger.exception(f"Observer failed handling {kind.value} event")
