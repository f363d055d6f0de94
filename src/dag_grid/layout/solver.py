"""Multi-Strategy Placement Solver.

Given an intent and its constraints, finds a concrete free cell for the new
node. Strategies are tried from least to most disruptive and the first one
that succeeds wins:

  1. Exact position         — the preferred cell, if free.
  2. Adjacent alternatives  — same row, column offsets ±1..±N.
  3. Row alternatives       — same column, row offsets ±1..±N.
  4. Minimal displacement   — not implemented; always reports failure.
  5. Strategic anchor shift — upstream only: push the anchor's branch east.
  6. Fallback search        — Chebyshev rings of growing radius.
  7. Distant fallback       — a cell outside the bounding box; never fails.

No strategy mutates state. Displacements are returned for the caller to
apply atomically together with the insertion.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from dag_grid.config import LayoutSettings
from dag_grid.config import settings as default_settings
from dag_grid.graph import GraphStore
from dag_grid.layout.types import (
    NodeDisplacement,
    PlacementConstraints,
    PlacementIntent,
    PlacementResult,
    PlacementStrategy,
    PlacementType,
)
from dag_grid.positions import GridPosition

logger = logging.getLogger(__name__)

Strategy = Callable[[PlacementIntent, PlacementConstraints], PlacementResult]

# Searched in this order; DISTANT_FALLBACK is the unconditional last resort.
STRATEGY_ORDER: tuple[PlacementStrategy, ...] = (
    PlacementStrategy.EXACT_POSITION,
    PlacementStrategy.ADJACENT_ALTERNATIVES,
    PlacementStrategy.ROW_ALTERNATIVES,
    PlacementStrategy.MINIMAL_DISPLACEMENT,
    PlacementStrategy.STRATEGIC_ANCHOR_SHIFT,
    PlacementStrategy.FALLBACK_SEARCH,
)


class PlacementSolver:
    """Read-only solver over a ``GraphStore``."""

    def __init__(self, store: GraphStore, settings: LayoutSettings | None = None) -> None:
        self.store = store
        self.settings = settings or default_settings
        self._strategies: dict[PlacementStrategy, Strategy] = {
            PlacementStrategy.EXACT_POSITION: self.try_exact_position,
            PlacementStrategy.ADJACENT_ALTERNATIVES: self.try_adjacent_alternatives,
            PlacementStrategy.ROW_ALTERNATIVES: self.try_row_alternatives,
            PlacementStrategy.MINIMAL_DISPLACEMENT: self.try_minimal_displacement,
            PlacementStrategy.STRATEGIC_ANCHOR_SHIFT: self.try_strategic_anchor_shift,
            PlacementStrategy.FALLBACK_SEARCH: self.try_fallback_search,
        }

    def solve(
        self,
        intent: PlacementIntent,
        constraints: PlacementConstraints,
        skip: frozenset[PlacementStrategy] = frozenset(),
    ) -> PlacementResult:
        """Run the strategies in order and return the first success.

        ``skip`` names strategies to leave out, used by the caller when a
        chosen result could not be committed.
        """
        for strategy in STRATEGY_ORDER:
            if strategy in skip:
                continue
            logger.debug(f"Trying placement strategy: {strategy.value}")
            result = self._strategies[strategy](intent, constraints)
            if result.success:
                logger.info(f"Strategy {strategy.value} placed '{intent.new_node}' at {result.position}")
                return result
            logger.debug(f"Strategy {strategy.value} failed: {result.reason}")

        position = self.distant_fallback_position(intent, constraints)
        logger.warning(f"All proximity strategies failed for '{intent.new_node}'; using distant position {position}")
        return PlacementResult(
            position=position,
            strategy=PlacementStrategy.DISTANT_FALLBACK,
            success=True,
            reason="All proximity strategies failed, using distant position",
        )

    # ─── Hard Constraints ────────────────────────────────────────────────────

    def satisfies_hard_constraints(
        self,
        position: GridPosition,
        intent: PlacementIntent,
        constraints: PlacementConstraints,
        overrides: dict[str, GridPosition] | None = None,
    ) -> bool:
        """True unless ``position`` puts the new node on the wrong side of a
        node referenced by a hard constraint.

        ``overrides`` supplies positions for nodes a pending displacement
        would move.
        """
        overrides = overrides or {}

        def column_of(node_id: str) -> int | None:
            if node_id in overrides:
                return overrides[node_id].col
            node = self.store.find_node(node_id)
            return node.col if node is not None else None

        for constraint in constraints.hard:
            if constraint.after == intent.new_node:
                before_col = column_of(constraint.before)
                if before_col is not None and position.col <= before_col:
                    return False
            if constraint.before == intent.new_node:
                after_col = column_of(constraint.after)
                if after_col is not None and position.col >= after_col:
                    return False
        return True

    def _is_candidate(self, position: GridPosition, intent: PlacementIntent, constraints: PlacementConstraints) -> bool:
        return not self.store.positions.is_occupied(position) and self.satisfies_hard_constraints(
            position, intent, constraints
        )

    # ─── Strategies ──────────────────────────────────────────────────────────

    def try_exact_position(self, intent: PlacementIntent, constraints: PlacementConstraints) -> PlacementResult:
        strategy = PlacementStrategy.EXACT_POSITION
        preferred = constraints.preferred_for(intent.new_node)
        if preferred is None:
            return PlacementResult.failed(strategy, "No preferred position constraint")
        position = preferred.preferred_position
        if self.store.positions.is_occupied(position):
            return PlacementResult.failed(strategy, f"Preferred position {position} is occupied")
        return PlacementResult(position=position, strategy=strategy, success=True, reason="Preferred position is free")

    def try_adjacent_alternatives(self, intent: PlacementIntent, constraints: PlacementConstraints) -> PlacementResult:
        strategy = PlacementStrategy.ADJACENT_ALTERNATIVES
        preferred = constraints.preferred_for(intent.new_node)
        if preferred is None:
            return PlacementResult.failed(strategy, "No preferred position constraint")
        origin = preferred.preferred_position
        for offset in range(1, self.settings.adjacent_col_offsets + 1):
            for direction in (-1, 1):
                candidate = origin.offset(cols=offset * direction)
                if self._is_candidate(candidate, intent, constraints):
                    return PlacementResult(
                        position=candidate,
                        strategy=strategy,
                        success=True,
                        reason=f"Found adjacent alternative at {candidate}",
                    )
        return PlacementResult.failed(strategy, "No adjacent alternatives found")

    def try_row_alternatives(self, intent: PlacementIntent, constraints: PlacementConstraints) -> PlacementResult:
        strategy = PlacementStrategy.ROW_ALTERNATIVES
        preferred = constraints.preferred_for(intent.new_node)
        if preferred is None:
            return PlacementResult.failed(strategy, "No preferred position constraint")
        origin = preferred.preferred_position
        for offset in range(1, self.settings.row_offsets + 1):
            for direction in (-1, 1):
                candidate = origin.offset(rows=offset * direction)
                if self._is_candidate(candidate, intent, constraints):
                    return PlacementResult(
                        position=candidate,
                        strategy=strategy,
                        success=True,
                        reason=f"Found row alternative at {candidate}",
                    )
        return PlacementResult.failed(strategy, "No row alternatives found")

    def try_minimal_displacement(self, intent: PlacementIntent, constraints: PlacementConstraints) -> PlacementResult:
        # Single-node displacement is intentionally not provided; see DESIGN.md.
        return PlacementResult.failed(PlacementStrategy.MINIMAL_DISPLACEMENT, "Minimal displacement not implemented")

    def try_strategic_anchor_shift(self, intent: PlacementIntent, constraints: PlacementConstraints) -> PlacementResult:
        """Shift the anchor's whole downstream branch east to free the preferred cell.

        Only applies to upstream intents whose preferred cell is occupied.
        Shift amounts 1..``max_anchor_shift`` are tried in order.
        """
        strategy = PlacementStrategy.STRATEGIC_ANCHOR_SHIFT
        if intent.type is not PlacementType.ADJACENT_UPSTREAM or intent.anchor is None:
            return PlacementResult.failed(strategy, "Strategic anchor shift only applies to upstream placement")
        if self.store.find_node(intent.anchor) is None:
            return PlacementResult.failed(strategy, f"Anchor '{intent.anchor}' not found")
        preferred = constraints.preferred_for(intent.new_node)
        if preferred is None:
            return PlacementResult.failed(strategy, "No preferred position constraint for strategic shift")
        target = preferred.preferred_position
        if not self.store.positions.is_occupied(target):
            return PlacementResult.failed(strategy, "Preferred position is not occupied, no shift needed")

        for amount in range(1, self.settings.max_anchor_shift + 1):
            logger.debug(f"Trying anchor shift of {amount} column(s)")
            displacements = self.evaluate_anchor_shift(intent, constraints, target, amount)
            if displacements is not None:
                return PlacementResult(
                    position=target,
                    strategy=strategy,
                    displacements=displacements,
                    success=True,
                    reason=f"Shifted anchor branch by {amount} to create space",
                )
        return PlacementResult.failed(strategy, "No beneficial anchor shift found")

    def evaluate_anchor_shift(
        self,
        intent: PlacementIntent,
        constraints: PlacementConstraints,
        target: GridPosition,
        amount: int,
    ) -> list[NodeDisplacement] | None:
        """Displacements shifting the anchor's branch ``amount`` columns east,
        or None if the shift is blocked or would not free ``target``.
        """
        branch = self.store.branch(intent.anchor)
        members = set(branch)
        locked = (constraints.locked_ids - {intent.anchor}) & members
        if locked:
            logger.debug(f"Shift blocked: branch contains locked node(s) {sorted(locked)}")
            return None

        displacements: list[NodeDisplacement] = []
        for node_id in branch:
            node = self.store.find_node(node_id)
            destination = node.position.offset(cols=amount)
            occupant = self.store.positions.occupant(destination)
            if occupant is not None and occupant not in members:
                logger.debug(f"Shift blocked: {destination} occupied by '{occupant}' (not in branch)")
                return None
            displacements.append(
                NodeDisplacement(
                    node_id=node_id,
                    from_position=node.position,
                    to_position=destination,
                    reason=f"Strategic shift to make space for '{intent.new_node}'",
                )
            )

        occupant = self.store.positions.occupant(target)
        if occupant is not None and occupant not in members:
            return None
        if any(d.to_position == target for d in displacements):
            return None
        overrides = {d.node_id: d.to_position for d in displacements}
        if not self.satisfies_hard_constraints(target, intent, constraints, overrides):
            return None
        return displacements

    def try_fallback_search(self, intent: PlacementIntent, constraints: PlacementConstraints) -> PlacementResult:
        """First free, admissible cell on a Chebyshev ring around the preferred cell."""
        strategy = PlacementStrategy.FALLBACK_SEARCH
        preferred = constraints.preferred_for(intent.new_node)
        if preferred is None:
            return PlacementResult.failed(strategy, "No preferred position constraint")
        origin = preferred.preferred_position
        for radius in range(1, self.settings.search_radius + 1):
            for col_offset in range(-radius, radius + 1):
                for row_offset in range(-radius, radius + 1):
                    candidate = origin.offset(cols=col_offset, rows=row_offset)
                    if candidate.chebyshev(origin) != radius:
                        continue
                    if self._is_candidate(candidate, intent, constraints):
                        return PlacementResult(
                            position=candidate,
                            strategy=strategy,
                            success=True,
                            reason=f"Found position in radius {radius} search",
                        )
        return PlacementResult.failed(strategy, f"No free cell within radius {self.settings.search_radius}")

    def distant_fallback_position(self, intent: PlacementIntent, constraints: PlacementConstraints) -> GridPosition:
        """A cell guaranteed free because it lies outside the occupied bounding box.

        With a preferred cell: one column right of the rightmost node and one
        row below the bottommost. Without one (disconnected requests): column
        0 of a fresh row below every node.
        """
        bounds = self.store.bounds()
        max_col, max_row = bounds if bounds is not None else (-1, -1)
        if constraints.preferred_for(intent.new_node) is None:
            return GridPosition(0, max_row + self.settings.disconnected_row_gap)
        return GridPosition(max_col + 1, max_row + 1)
