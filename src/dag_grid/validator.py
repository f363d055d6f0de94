"""Invariant checks: cell uniqueness, map/store consistency, edge ordering.

Read-only diagnostics. The ``*_errors`` functions return a list of messages
(empty = valid); the ``validate_*`` functions reduce them to a bool.
Inconsistencies are reported, never repaired.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from dag_grid.graph import GraphStore
from dag_grid.positions import GridPosition

logger = logging.getLogger(__name__)


def overlap_errors(store: GraphStore) -> list[str]:
    """Duplicate cells plus every disagreement between nodes and the Position Map."""
    errors: list[str] = []
    errors.extend(_check_duplicate_cells(store))
    errors.extend(_check_position_map(store))
    return errors


def topology_errors(store: GraphStore) -> list[str]:
    """Edges with a missing endpoint or that do not point strictly east."""
    errors: list[str] = []
    for edge in store.edges:
        source = store.find_node(edge.source)
        target = store.find_node(edge.target)
        if source is None or target is None:
            errors.append(f"Edge {edge} references non-existent node")
            continue
        if source.col >= target.col:
            errors.append(f"Edge violates topological order: {edge.source}@{source.col} → {edge.target}@{target.col}")
    return errors


def validate_no_overlaps(store: GraphStore) -> bool:
    errors = overlap_errors(store)
    for error in errors:
        logger.error(f"Validation failed: {error}")
    return not errors


def validate_topological_order(store: GraphStore) -> bool:
    errors = topology_errors(store)
    for error in errors:
        logger.error(f"Validation failed: {error}")
    return not errors


def _check_duplicate_cells(store: GraphStore) -> list[str]:
    by_cell: dict[GridPosition, list[str]] = defaultdict(list)
    for node in store:
        by_cell[node.position].append(node.id)
    return [
        f"Overlap at {position}: {', '.join(ids)}"
        for position, ids in sorted(by_cell.items())
        if len(ids) > 1
    ]


def _check_position_map(store: GraphStore) -> list[str]:
    errors: list[str] = []
    for node in store:
        mapped = store.positions.occupant(node.position)
        if mapped is None:
            errors.append(f"Node '{node.id}' at {node.position} not found in position map")
        elif mapped != node.id:
            errors.append(f"Position {node.position} maps to '{mapped}' but node '{node.id}' claims it")

    for position, node_id in store.positions.items():
        node = store.find_node(node_id)
        if node is None:
            errors.append(f"Position map shows '{node_id}' at {position} but no such node exists")
        elif node.position != position:
            errors.append(f"Position map shows '{node_id}' at {position} but node is at {node.position}")
    return errors
