"""Exceptions raised by the grid layout engine."""

from __future__ import annotations

from dag_grid.positions import GridPosition


class LayoutError(Exception):
    """Base class for every error the engine signals to its caller."""


class UnknownAnchorError(LayoutError):
    """An upstream/downstream request named an anchor that does not exist."""

    def __init__(self, anchor_id: str, new_id: str):
        self.anchor_id = anchor_id
        self.new_id = new_id
        super().__init__(f"Cannot place '{new_id}': anchor '{anchor_id}' not found")


class DuplicateNodeError(LayoutError):
    """A node id is already present in the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' already exists")


class PositionConflictError(LayoutError):
    """A direct insertion targeted a cell held by another node."""

    def __init__(self, node_id: str, position: GridPosition, occupant: str | None):
        self.node_id = node_id
        self.position = position
        self.occupant = occupant
        super().__init__(f"Cannot add '{node_id}': position {position} is occupied by '{occupant}'")


class CycleDetectedError(LayoutError):
    """Topological sort could not order every node.

    ``remaining`` holds the ids that never reached in-degree zero, i.e. the
    nodes on or downstream of a cycle.
    """

    def __init__(self, remaining: list[str]):
        self.remaining = remaining
        super().__init__(f"Cycle detected; unordered nodes: {', '.join(remaining)}")
