"""Tests for graph.py — Node/Edge records and the GraphStore.

Covers:
  - record equality (creation time ignored)
  - add_node reservation-before-append (conflicts never mutate)
  - add_edge adjacency (forward/reverse), duplicates, dangling endpoints
  - move_node / move_nodes / place_with_displacements atomicity
  - branch (downstream reachability) and bounds
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from dag_grid.errors import DuplicateNodeError, PositionConflictError
from dag_grid.graph import Edge, GraphStore, Node, NodeMove
from dag_grid.positions import GridPosition

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_store(nodes: dict[str, tuple[int, int]], edges: list[tuple[str, str]] = ()) -> GraphStore:
    """Build a GraphStore from ``{id: (col, row)}`` and ``(source, target)`` pairs."""
    store = GraphStore()
    for node_id, (col, row) in nodes.items():
        store.add_node(Node(node_id, col, row))
    for source, target in edges:
        store.add_edge(source, target)
    return store


def positions_of(store: GraphStore) -> dict[str, GridPosition]:
    return {node.id: node.position for node in store}


# ─── Records ──────────────────────────────────────────────────────────────────


class TestRecords:
    def test_node_position(self):
        """Node.position — GridPosition built from col and row."""
        assert Node("A", 3, 4).position == GridPosition(3, 4)

    def test_node_equality_ignores_created_at(self):
        """Nodes differing only in created_at — compare equal."""
        earlier = datetime.now() - timedelta(hours=1)
        assert Node("A", 1, 1, created_at=earlier) == Node("A", 1, 1)

    def test_edge_equality_ignores_created_at(self):
        """Edges differing only in created_at — equal and same hash; direction matters."""
        earlier = datetime.now() - timedelta(days=1)
        assert Edge("A", "B", created_at=earlier) == Edge("A", "B")
        assert hash(Edge("A", "B", created_at=earlier)) == hash(Edge("A", "B"))
        assert Edge("A", "B") != Edge("B", "A")

    def test_str(self):
        """str() of Node, Edge and NodeMove — readable one-line forms."""
        assert str(Node("A", 1, 2)) == "Node(A @ col:1, row:2)"
        assert str(Edge("A", "B")) == "A → B"
        assert str(NodeMove("A", GridPosition(0, 0), GridPosition(1, 0))) == "'A' (0,0) → (1,0)"


# ─── add_node ─────────────────────────────────────────────────────────────────


class TestAddNode:
    def test_add_node_reserves_cell(self):
        """add_node — node findable and its cell held in the position map."""
        store = make_store({"A": (1, 1)})
        assert store.find_node("A") == Node("A", 1, 1)
        assert store.positions.occupant(GridPosition(1, 1)) == "A"
        assert "A" in store
        assert len(store) == 1

    def test_conflict_raises_without_mutation(self):
        """Occupied cell: PositionConflictError, node not appended, map untouched."""
        store = make_store({"A": (1, 1)})
        with pytest.raises(PositionConflictError) as excinfo:
            store.add_node(Node("B", 1, 1))
        assert excinfo.value.occupant == "A"
        assert excinfo.value.position == GridPosition(1, 1)
        assert store.find_node("B") is None
        assert len(store.positions) == 1
        assert "B" not in store.digraph

    def test_duplicate_id_raises(self):
        """Re-adding id A elsewhere — DuplicateNodeError, nothing reserved."""
        store = make_store({"A": (1, 1)})
        with pytest.raises(DuplicateNodeError):
            store.add_node(Node("A", 5, 5))
        assert store.find_node("A").position == GridPosition(1, 1)
        assert not store.positions.is_occupied(GridPosition(5, 5))

    def test_insertion_order_preserved(self):
        """node_ids — returned in insertion order, not sorted."""
        store = make_store({"C": (0, 0), "A": (1, 0), "B": (2, 0)})
        assert store.node_ids == ["C", "A", "B"]


# ─── add_edge / adjacency ─────────────────────────────────────────────────────


class TestEdges:
    def test_forward_and_reverse_adjacency(self):
        """A → B, A → C — successors and predecessors agree with the edges."""
        store = make_store({"A": (0, 0), "B": (1, 0), "C": (1, 1)}, [("A", "B"), ("A", "C")])
        assert store.successors("A") == ["B", "C"]
        assert store.predecessors("B") == ["A"]
        assert store.predecessors("A") == []
        assert store.edges == [Edge("A", "B"), Edge("A", "C")]

    def test_duplicate_edge_keeps_first_record(self):
        """Adding A → B twice — one edge, the first record returned."""
        store = make_store({"A": (0, 0), "B": (1, 0)})
        first = store.add_edge("A", "B")
        second = store.add_edge("A", "B")
        assert second is first
        assert len(store.edges) == 1

    def test_edge_does_not_check_topology(self):
        """Backwards edges are accepted structurally."""
        store = make_store({"A": (0, 0), "B": (1, 0)})
        store.add_edge("B", "A")
        assert store.successors("B") == ["A"]

    def test_dangling_edge_hidden_from_adjacency(self):
        """An edge to a missing id is recorded but not reported as adjacency."""
        store = make_store({"A": (0, 0)})
        store.add_edge("A", "ghost")
        assert Edge("A", "ghost") in store.edges
        assert store.successors("A") == []
        assert store.node_ids == ["A"]

    def test_dangling_edge_becomes_live(self):
        """A → ghost, then ghost added — the edge shows up in adjacency."""
        store = make_store({"A": (0, 0)})
        store.add_edge("A", "ghost")
        store.add_node(Node("ghost", 1, 0))
        assert store.successors("A") == ["ghost"]
        assert store.predecessors("ghost") == ["A"]

    def test_unknown_node_adjacency_is_empty(self):
        """Adjacency of an unknown id — empty lists."""
        store = GraphStore()
        assert store.successors("nope") == []
        assert store.predecessors("nope") == []


# ─── Moves ────────────────────────────────────────────────────────────────────


class TestMoves:
    def test_move_node_updates_record_and_map(self):
        """move_node to a free cell — record and map both follow."""
        store = make_store({"A": (0, 0)})
        assert store.move_node("A", GridPosition(2, 3))
        assert store.find_node("A").position == GridPosition(2, 3)
        assert store.positions.occupant(GridPosition(2, 3)) == "A"
        assert not store.positions.is_occupied(GridPosition(0, 0))

    def test_move_node_blocked(self):
        """move_node onto B's cell — False, positions unchanged."""
        store = make_store({"A": (0, 0), "B": (1, 0)})
        assert not store.move_node("A", GridPosition(1, 0))
        assert positions_of(store) == {"A": GridPosition(0, 0), "B": GridPosition(1, 0)}

    def test_move_unknown_node(self):
        """move_node of an unknown id — False."""
        assert not GraphStore().move_node("X", GridPosition(0, 0))

    def test_move_nodes_atomic_success(self):
        """A → B's cell while B moves on — batch applied."""
        store = make_store({"A": (0, 0), "B": (1, 0)})
        assert store.move_nodes([
            NodeMove("A", GridPosition(0, 0), GridPosition(1, 0)),
            NodeMove("B", GridPosition(1, 0), GridPosition(2, 0)),
        ])
        assert positions_of(store) == {"A": GridPosition(1, 0), "B": GridPosition(2, 0)}

    def test_move_nodes_all_or_nothing(self):
        """A batch blocked by an outside node leaves every node where it was."""
        store = make_store({"A": (0, 0), "B": (1, 0), "Z": (2, 0)})
        before = positions_of(store)
        assert not store.move_nodes([
            NodeMove("A", GridPosition(0, 0), GridPosition(1, 0)),
            NodeMove("B", GridPosition(1, 0), GridPosition(2, 0)),
        ])
        assert positions_of(store) == before
        assert dict(store.positions.items()) == {p: n for n, p in before.items()}

    def test_move_nodes_rejects_stale_source(self):
        """Batch naming a cell A does not hold — rejected."""
        store = make_store({"A": (0, 0)})
        assert not store.move_nodes([NodeMove("A", GridPosition(5, 5), GridPosition(6, 5))])
        assert store.find_node("A").position == GridPosition(0, 0)


class TestPlaceWithDisplacements:
    def test_displacement_frees_target(self):
        """The new node may take a cell that the batch vacates."""
        store = make_store({"A": (1, 0), "B": (2, 0)}, [("A", "B")])
        ok = store.place_with_displacements(
            Node("N", 1, 0),
            [
                NodeMove("A", GridPosition(1, 0), GridPosition(2, 0)),
                NodeMove("B", GridPosition(2, 0), GridPosition(3, 0)),
            ],
        )
        assert ok
        assert positions_of(store) == {
            "A": GridPosition(2, 0),
            "B": GridPosition(3, 0),
            "N": GridPosition(1, 0),
        }

    def test_failed_batch_leaves_store_unchanged(self):
        """Displacement blocked by Z — insertion refused, store unchanged."""
        store = make_store({"A": (1, 0), "Z": (2, 0)})
        before = positions_of(store)
        ok = store.place_with_displacements(
            Node("N", 1, 0), [NodeMove("A", GridPosition(1, 0), GridPosition(2, 0))]
        )
        assert not ok
        assert positions_of(store) == before
        assert "N" not in store

    def test_unreservable_target_reverts_batch(self):
        """Displacements succeed but the target stays occupied: everything is undone."""
        store = make_store({"A": (0, 0), "X": (5, 5)})
        ok = store.place_with_displacements(
            Node("N", 5, 5), [NodeMove("A", GridPosition(0, 0), GridPosition(1, 0))]
        )
        assert not ok
        assert store.find_node("A").position == GridPosition(0, 0)
        assert store.positions.occupant(GridPosition(0, 0)) == "A"
        assert not store.positions.is_occupied(GridPosition(1, 0))
        assert "N" not in store

    def test_no_displacements(self):
        """Empty displacement batch — plain insertion."""
        store = make_store({"A": (0, 0)})
        assert store.place_with_displacements(Node("N", 1, 0), [])
        assert store.find_node("N").position == GridPosition(1, 0)


# ─── Branch / Bounds / Clear ──────────────────────────────────────────────────


class TestQueries:
    def test_branch_includes_root_and_descendants(self):
        """branch(A) — A plus every downstream node, breadth-first."""
        store = make_store(
            {"A": (0, 0), "B": (1, 0), "C": (2, 0), "D": (1, 1), "X": (0, 1)},
            [("A", "B"), ("B", "C"), ("A", "D"), ("X", "D")],
        )
        assert store.branch("A") == ["A", "B", "D", "C"]
        assert set(store.branch("X")) == {"X", "D"}
        assert store.branch("C") == ["C"]

    def test_branch_of_unknown_node(self):
        """branch of an unknown id — empty."""
        assert GraphStore().branch("nope") == []

    def test_bounds(self):
        """bounds() — None when empty, else (max col, max row)."""
        assert GraphStore().bounds() is None
        store = make_store({"A": (-2, 4), "B": (3, -1)})
        assert store.bounds() == (3, 4)

    def test_clear(self):
        """clear() — nodes, edges, map and digraph all emptied."""
        store = make_store({"A": (0, 0), "B": (1, 0)}, [("A", "B")])
        store.clear()
        assert len(store) == 0
        assert store.edges == []
        assert len(store.positions) == 0
        assert store.digraph.number_of_nodes() == 0
