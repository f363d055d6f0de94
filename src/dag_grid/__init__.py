"""dag_grid — incremental DAG placement on an integer grid.

Nodes are inserted next to an anchor (or disconnected) and the whole graph
is re-layered so every edge points strictly east and every cell holds at
most one node.
"""

from dag_grid.config import LayoutSettings
from dag_grid.engine import GridLayoutEngine
from dag_grid.errors import (
    CycleDetectedError,
    DuplicateNodeError,
    LayoutError,
    PositionConflictError,
    UnknownAnchorError,
)
from dag_grid.events import ChangeSet, EventKind, LayoutEvent, LayoutObserver
from dag_grid.graph import Edge, Node, NodeMove
from dag_grid.positions import GridPosition

__all__ = [
    "ChangeSet",
    "CycleDetectedError",
    "DuplicateNodeError",
    "Edge",
    "EventKind",
    "GridLayoutEngine",
    "GridPosition",
    "LayoutError",
    "LayoutEvent",
    "LayoutObserver",
    "LayoutSettings",
    "Node",
    "NodeMove",
    "PositionConflictError",
    "UnknownAnchorError",
]
