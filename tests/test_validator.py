"""Tests for validator.py — overlap and topology diagnostics.

Corruption is introduced by editing node records or the Position Map
directly, bypassing the store's guarded mutation paths.
"""

from __future__ import annotations

import logging

from dag_grid import validator
from dag_grid.graph import GraphStore, Node
from dag_grid.positions import GridPosition


def make_store(nodes: dict[str, tuple[int, int]], edges: list[tuple[str, str]] = ()) -> GraphStore:
    store = GraphStore()
    for node_id, (col, row) in nodes.items():
        store.add_node(Node(node_id, col, row))
    for source, target in edges:
        store.add_edge(source, target)
    return store


class TestOverlaps:
    def test_consistent_store(self):
        """Store built through the API — no overlap errors."""
        store = make_store({"A": (0, 0), "B": (1, 0)}, [("A", "B")])
        assert validator.overlap_errors(store) == []
        assert validator.validate_no_overlaps(store)

    def test_two_nodes_claim_one_cell(self):
        """B's record edited onto A's cell — overlap and both map mismatches reported."""
        store = make_store({"A": (0, 0), "B": (1, 0)})
        store.find_node("B").col = 0
        errors = validator.overlap_errors(store)
        assert "Overlap at (0,0): A, B" in errors
        assert "Position (0,0) maps to 'A' but node 'B' claims it" in errors
        assert "Position map shows 'B' at (1,0) but node is at (0,0)" in errors
        assert not validator.validate_no_overlaps(store)

    def test_node_missing_from_map(self):
        """A's cell released behind its back — "not found in position map"."""
        store = make_store({"A": (0, 0)})
        store.positions.release(GridPosition(0, 0))
        assert validator.overlap_errors(store) == ["Node 'A' at (0,0) not found in position map"]

    def test_map_entry_without_node(self):
        """Map entry for an unknown id — "no such node exists"."""
        store = make_store({"A": (0, 0)})
        store.positions.reserve("ghost", GridPosition(5, 5))
        assert validator.overlap_errors(store) == [
            "Position map shows 'ghost' at (5,5) but no such node exists"
        ]

    def test_failures_logged_at_error(self, caplog):
        """Overlap failures — logged at ERROR by the validator logger."""
        store = make_store({"A": (0, 0)})
        store.positions.release(GridPosition(0, 0))
        with caplog.at_level(logging.ERROR, logger="dag_grid.validator"):
            validator.validate_no_overlaps(store)
        assert any("not found in position map" in r.message for r in caplog.records)


class TestTopology:
    def test_edges_pointing_east(self):
        """A(0) → B(2) — no topology errors."""
        store = make_store({"A": (0, 0), "B": (2, 5)}, [("A", "B")])
        assert validator.topology_errors(store) == []
        assert validator.validate_topological_order(store)

    def test_same_column_is_a_violation(self):
        """A(0) → B(0) — one ordering error."""
        store = make_store({"A": (0, 0), "B": (0, 1)}, [("A", "B")])
        assert validator.topology_errors(store) == ["Edge violates topological order: A@0 → B@0"]
        assert not validator.validate_topological_order(store)

    def test_backwards_edge(self):
        """A(3) → B(1) — topology invalid."""
        store = make_store({"A": (3, 0), "B": (1, 0)}, [("A", "B")])
        assert not validator.validate_topological_order(store)

    def test_dangling_edge(self):
        """A → ghost — "references non-existent node"."""
        store = make_store({"A": (0, 0)}, [("A", "ghost")])
        assert validator.topology_errors(store) == ["Edge A → ghost references non-existent node"]

    def test_validation_is_read_only_and_repeatable(self):
        """Validating twice — same errors, positions untouched."""
        store = make_store({"A": (0, 0), "B": (0, 1)}, [("A", "B")])
        first = validator.topology_errors(store)
        second = validator.topology_errors(store)
        assert first == second
        assert store.find_node("B").position == GridPosition(0, 1)
