"""Intent & Constraint Generator.

Translates a placement request into hard topological constraints, soft
proximity preferences and node locks. Reads the store, never mutates it.
"""

from __future__ import annotations

import logging

from dag_grid.graph import GraphStore
from dag_grid.layout.types import (
    NodeLock,
    PlacementConstraints,
    PlacementIntent,
    PlacementType,
    ProximityConstraint,
    TopologicalConstraint,
)

logger = logging.getLogger(__name__)

PROXIMITY_TOLERANCE = 1


def generate_constraints(intent: PlacementIntent, store: GraphStore) -> PlacementConstraints:
    """Derive the constraint set for ``intent``.

    - downstream: anchor before new node; prefer ``(anchor.col + 1, anchor.row)``.
    - upstream: new node before anchor; prefer ``(anchor.col - 1, anchor.row)``.
    - disconnected: nothing.

    The anchor is locked in both relational cases. If the anchor does not
    exist the result carries no hard or soft entries, which callers must
    treat as a failed intent.
    """
    logger.debug(f"Generating constraints for intent: {intent.reason}")
    constraints = PlacementConstraints()

    if intent.type is PlacementType.DISCONNECTED:
        return constraints

    anchor = store.find_node(intent.anchor) if intent.anchor is not None else None
    if anchor is None:
        logger.error(f"Cannot find anchor '{intent.anchor}' for {intent.type.value} placement")
        return constraints

    constraints.locks.append(NodeLock(anchor.id, reason=f"Anchor node for {intent.type.value} placement"))

    if intent.type is PlacementType.ADJACENT_DOWNSTREAM:
        constraints.hard.append(
            TopologicalConstraint(before=anchor.id, after=intent.new_node, reason="Downstream topology requirement")
        )
        constraints.soft.append(
            ProximityConstraint(
                node=intent.new_node,
                preferred_position=anchor.position.offset(cols=1),
                tolerance=PROXIMITY_TOLERANCE,
                reason="User expects adjacent downstream placement",
            )
        )
    else:
        constraints.hard.append(
            TopologicalConstraint(before=intent.new_node, after=anchor.id, reason="Upstream topology requirement")
        )
        constraints.soft.append(
            ProximityConstraint(
                node=intent.new_node,
                preferred_position=anchor.position.offset(cols=-1),
                tolerance=PROXIMITY_TOLERANCE,
                reason="User expects adjacent upstream placement",
            )
        )

    logger.debug(
        f"Generated {len(constraints.hard)} hard, {len(constraints.soft)} soft constraints, "
        f"{len(constraints.locks)} locks"
    )
    return constraints
