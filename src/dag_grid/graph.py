"""Graph Store — nodes, edges and adjacency for the grid layout engine.

Nodes live in an id-keyed arena (insertion ordered) so lookups are O(1).
Adjacency is held in a ``networkx.DiGraph``: successors give the forward
index, predecessors the reverse index. Each edge carries its ``Edge`` record
under the ``data`` attribute.

Occupancy is delegated to the owned ``PositionMap``; a node is only ever
appended to the arena after its cell reservation succeeded, and every
position change goes through the map first.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime

import networkx as nx

from dag_grid.errors import DuplicateNodeError, PositionConflictError
from dag_grid.positions import GridPosition, PositionMap

logger = logging.getLogger(__name__)


# ─── Records ──────────────────────────────────────────────────────────────────


@dataclass
class Node:
    """A named node. ``col`` is its topological layer, ``row`` its lane."""

    id: str
    col: int
    row: int
    created_at: datetime = field(default_factory=datetime.now, compare=False, repr=False)

    @property
    def position(self) -> GridPosition:
        return GridPosition(self.col, self.row)

    def __str__(self) -> str:
        return f"Node({self.id} @ col:{self.col}, row:{self.row})"


@dataclass(frozen=True)
class Edge:
    """Directed edge ``source → target``: source is upstream of target.

    Identity is the ordered pair; creation time is metadata only.
    """

    source: str
    target: str
    created_at: datetime = field(default_factory=datetime.now, compare=False, hash=False, repr=False)

    def __str__(self) -> str:
        return f"{self.source} → {self.target}"


@dataclass(frozen=True)
class NodeMove:
    """One node moving from one cell to another."""

    node_id: str
    from_position: GridPosition
    to_position: GridPosition

    def __str__(self) -> str:
        return f"'{self.node_id}' {self.from_position} → {self.to_position}"


# ─── Store ────────────────────────────────────────────────────────────────────


class GraphStore:
    """Authoritative set of nodes and edges plus the occupancy index."""

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}
        self.digraph: nx.DiGraph = nx.DiGraph()
        self.positions = PositionMap()

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    @property
    def node_ids(self) -> list[str]:
        return list(self._nodes)

    @property
    def edges(self) -> list[Edge]:
        return [attrs["data"] for _, _, attrs in self.digraph.edges(data=True)]

    def find_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    # ── Mutation ──────────────────────────────────────────────────────────────

    def add_node(self, node: Node) -> Node:
        """Reserve the node's cell, then append it to the arena.

        Raises DuplicateNodeError or PositionConflictError without mutating
        anything when the id or the cell is already taken.
        """
        if node.id in self._nodes:
            raise DuplicateNodeError(node.id)
        if not self.positions.reserve(node.id, node.position):
            raise PositionConflictError(node.id, node.position, self.positions.occupant(node.position))
        self._nodes[node.id] = node
        self.digraph.add_node(node.id)
        logger.info(f"Added node '{node.id}' at {node.position}")
        return node

    def add_edge(self, source: str, target: str) -> Edge:
        """Record ``source → target``. No topological check is made here.

        Adding an existing pair returns the original record unchanged.
        """
        if self.digraph.has_edge(source, target):
            return self.digraph.edges[source, target]["data"]
        edge = Edge(source=source, target=target)
        self.digraph.add_edge(source, target, data=edge)
        logger.info(f"Created edge: {edge}")
        return edge

    def move_node(self, node_id: str, to_position: GridPosition) -> bool:
        """Move one node through the Position Map; the record follows on success."""
        node = self._nodes.get(node_id)
        if node is None:
            return False
        if not self.positions.move(node_id, node.position, to_position):
            return False
        node.col, node.row = to_position.col, to_position.row
        return True

    def move_nodes(self, moves: Iterable[NodeMove]) -> bool:
        """Apply a batch of moves atomically (all-or-nothing)."""
        batch = list(moves)
        for move in batch:
            node = self._nodes.get(move.node_id)
            if node is None or node.position != move.from_position:
                logger.error(f"Batch rejected: stale or unknown move {move}")
                return False
        if not self.positions.move_many((m.node_id, m.from_position, m.to_position) for m in batch):
            return False
        for move in batch:
            node = self._nodes[move.node_id]
            node.col, node.row = move.to_position.col, move.to_position.row
        return True

    def place_with_displacements(self, node: Node, displacements: Iterable[NodeMove]) -> bool:
        """Insert ``node`` together with a batch of displacements, atomically.

        The displacements are applied first (they may be what frees the
        node's cell). If the node then cannot reserve its cell the batch is
        reverted and False is returned with the store unchanged.
        """
        if node.id in self._nodes:
            raise DuplicateNodeError(node.id)
        batch = list(displacements)
        if not self.move_nodes(batch):
            return False
        if not self.positions.reserve(node.id, node.position):
            undo = [NodeMove(m.node_id, m.to_position, m.from_position) for m in batch]
            self.move_nodes(undo)
            logger.error(f"Cannot reserve {node.position} for '{node.id}'; displacements reverted")
            return False
        self._nodes[node.id] = node
        self.digraph.add_node(node.id)
        logger.info(f"Added node '{node.id}' at {node.position} with {len(batch)} displacement(s)")
        return True

    def clear(self) -> None:
        self._nodes.clear()
        self.digraph.clear()
        self.positions.clear()
        logger.info("Graph cleared")

    # ── Adjacency queries ─────────────────────────────────────────────────────

    def successors(self, node_id: str) -> list[str]:
        """Existing nodes directly downstream of ``node_id``."""
        if node_id not in self.digraph:
            return []
        return [n for n in self.digraph.successors(node_id) if n in self._nodes]

    def predecessors(self, node_id: str) -> list[str]:
        """Existing nodes directly upstream of ``node_id``."""
        if node_id not in self.digraph:
            return []
        return [n for n in self.digraph.predecessors(node_id) if n in self._nodes]

    def branch(self, node_id: str) -> list[str]:
        """``node_id`` plus every existing node reachable downstream of it.

        Ordered breadth-first from ``node_id`` so the result is deterministic.
        """
        if node_id not in self._nodes:
            return []
        return [n for n in nx.bfs_tree(self.digraph, node_id) if n in self._nodes]

    def bounds(self) -> tuple[int, int] | None:
        """``(max_col, max_row)`` over all nodes, or None for an empty graph."""
        if not self._nodes:
            return None
        return (
            max(n.col for n in self._nodes.values()),
            max(n.row for n in self._nodes.values()),
        )
