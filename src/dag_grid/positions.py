"""Position Map: the authoritative occupancy index from grid cell to node id.

The map is kept bijective. Every cell holds at most one node id and every
node id holds at most one cell. All mutating operations either succeed
completely or leave the map untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class GridPosition:
    """A ``(col, row)`` cell on the infinite integer grid."""

    col: int
    row: int

    def __str__(self) -> str:
        return f"({self.col},{self.row})"

    def offset(self, cols: int = 0, rows: int = 0) -> GridPosition:
        return GridPosition(self.col + cols, self.row + rows)

    def chebyshev(self, other: GridPosition) -> int:
        return max(abs(self.col - other.col), abs(self.row - other.row))


class PositionMap:
    """Bijective index ``GridPosition → node id`` (and back)."""

    def __init__(self) -> None:
        self._cells: dict[GridPosition, str] = {}
        self._nodes: dict[str, GridPosition] = {}

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, position: object) -> bool:
        return position in self._cells

    def items(self) -> Iterator[tuple[GridPosition, str]]:
        return iter(list(self._cells.items()))

    def is_occupied(self, position: GridPosition) -> bool:
        return position in self._cells

    def occupant(self, position: GridPosition) -> str | None:
        return self._cells.get(position)

    def reserve(self, node_id: str, position: GridPosition) -> bool:
        """Claim ``position`` for ``node_id``.

        Fails if the cell is held by another node, or if the node already
        holds a different cell (a node never occupies two cells).
        """
        holder = self._cells.get(position)
        if holder is not None:
            if holder == node_id:
                return True
            logger.warning(f"Position {position} already occupied by '{holder}'")
            return False
        held = self._nodes.get(node_id)
        if held is not None:
            logger.warning(f"'{node_id}' already holds {held}; cannot also reserve {position}")
            return False
        self._cells[position] = node_id
        self._nodes[node_id] = position
        logger.debug(f"Reserved {position} for '{node_id}'")
        return True

    def release(self, position: GridPosition) -> str | None:
        """Free ``position`` and return the id that held it, if any."""
        node_id = self._cells.pop(position, None)
        if node_id is None:
            logger.warning(f"Attempted to release empty position {position}")
            return None
        del self._nodes[node_id]
        logger.debug(f"Released {position} (was '{node_id}')")
        return node_id

    def move(self, node_id: str, from_position: GridPosition, to_position: GridPosition) -> bool:
        """Move ``node_id`` from one cell to another.

        Returns False without mutating anything if ``to_position`` is held by
        a different node or ``from_position`` is not held by ``node_id``.
        """
        if self._cells.get(from_position) != node_id:
            logger.error(f"Move rejected: '{node_id}' does not hold {from_position}")
            return False
        holder = self._cells.get(to_position)
        if holder is not None and holder != node_id:
            logger.error(f"Move blocked: {to_position} occupied by '{holder}'")
            return False
        del self._cells[from_position]
        self._cells[to_position] = node_id
        self._nodes[node_id] = to_position
        logger.debug(f"Moved '{node_id}' {from_position} → {to_position}")
        return True

    def move_many(self, moves: Iterable[tuple[str, GridPosition, GridPosition]]) -> bool:
        """Apply a batch of ``(node_id, from, to)`` moves atomically.

        A target may be occupied only by another member of the batch (which
        vacates it). Targets must be distinct and every source must be held
        by its mover. On any violation nothing is changed.
        """
        batch = list(moves)
        if not batch:
            return True
        movers = {node_id for node_id, _, _ in batch}
        if len(movers) != len(batch):
            logger.error("Batch move rejected: a node appears more than once")
            return False
        targets = [to for _, _, to in batch]
        if len(set(targets)) != len(targets):
            logger.error("Batch move rejected: two nodes target the same cell")
            return False
        for node_id, from_position, to_position in batch:
            if self._cells.get(from_position) != node_id:
                logger.error(f"Batch move rejected: '{node_id}' does not hold {from_position}")
                return False
            holder = self._cells.get(to_position)
            if holder is not None and holder not in movers:
                logger.error(f"Batch move rejected: {to_position} occupied by '{holder}' outside the batch")
                return False

        for _, from_position, _ in batch:
            del self._cells[from_position]
        for node_id, _, to_position in batch:
            self._cells[to_position] = node_id
            self._nodes[node_id] = to_position
        logger.debug(f"Batch moved {len(batch)} node(s)")
        return True

    def clear(self) -> None:
        self._cells.clear()
        self._nodes.clear()

    def dump(self) -> list[str]:
        """Occupancy listing sorted by column then row."""
        return [f"{position}: '{node_id}'" for position, node_id in sorted(self._cells.items())]
