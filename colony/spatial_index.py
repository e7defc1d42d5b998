"""
Spatial index over world coordinates.

A uniform grid of buckets keyed by discretized position gives O(1)
amortized insert/remove/update and radius queries that only visit the
cells overlapping the query circle. Every proximity check in the core
(perception, mating contact, contagion) goes through this index.

Backend selection via constants.USE_CKDTREE:
- False: radius queries walk the overlapping grid cells
- True: radius queries use a scipy.cKDTree rebuilt lazily after changes

The grid stays the source of truth for membership with either backend.
"""

import math
import numpy as np
from typing import Any, Dict, Iterable, List, Optional, Tuple
from scipy.spatial import cKDTree

from .constants import GRID_CELL_SIZE, USE_CKDTREE, CKDTREE_LEAFSIZE
from .spatial import as_point

Cell = Tuple[int, int]


class SpatialIndex:
    """
    Uniform-grid spatial index for objects exposing a `position` attribute.

    Entities are tracked by identity, so any object with a 2D `position`
    can be registered (agents, food, predators).

    Invariant: a registered entity lives in exactly one cell, the one
    matching its position at the last insert()/update() call.
    """

    def __init__(
        self,
        cell_size: float = GRID_CELL_SIZE,
        use_ckdtree: Optional[bool] = None,
        leafsize: Optional[int] = None
    ):
        """
        Args:
            cell_size: Grid cell width in world units (must be > 0)
            use_ckdtree: Override USE_CKDTREE constant (for testing)
            leafsize: Override CKDTREE_LEAFSIZE constant (for testing)
        """
        if not cell_size or cell_size <= 0 or not math.isfinite(cell_size):
            cell_size = GRID_CELL_SIZE
        self.cell_size = float(cell_size)
        self._use_ckdtree = use_ckdtree if use_ckdtree is not None else USE_CKDTREE
        self._leafsize = leafsize if leafsize is not None else CKDTREE_LEAFSIZE

        self._cells: Dict[Cell, Dict[int, Any]] = {}
        self._cell_of: Dict[int, Cell] = {}
        self._entities: Dict[int, Any] = {}

        # cKDTree backend state (rebuilt lazily when dirty)
        self._tree: Optional[cKDTree] = None
        self._tree_refs: List[Any] = []
        self._dirty: bool = True

        # Build sequence counter (incremented on every tree build)
        self._build_seq: int = 0

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def _cell_for(self, point: np.ndarray) -> Cell:
        return (int(math.floor(point[0] / self.cell_size)),
                int(math.floor(point[1] / self.cell_size)))

    def insert(self, entity: Any) -> bool:
        """
        Register entity in the cell matching its current position.

        Re-inserting a registered entity behaves like update().

        Returns:
            True if registered, False if the entity has no finite position
        """
        key = id(entity)
        if key in self._entities:
            return self.update(entity)

        point = as_point(getattr(entity, 'position', None))
        if point is None:
            return False

        cell = self._cell_for(point)
        self._cells.setdefault(cell, {})[key] = entity
        self._cell_of[key] = cell
        self._entities[key] = entity
        self._dirty = True
        return True

    def remove(self, entity: Any) -> bool:
        """
        Unregister entity.

        Returns:
            True if the entity was registered
        """
        key = id(entity)
        cell = self._cell_of.pop(key, None)
        if cell is None:
            return False

        bucket = self._cells.get(cell)
        if bucket is not None:
            bucket.pop(key, None)
            if not bucket:
                del self._cells[cell]
        self._entities.pop(key, None)
        self._dirty = True
        return True

    def update(self, entity: Any) -> bool:
        """
        Re-bucket entity after it moved.

        Unregistered entities are inserted. An entity whose position has
        become non-finite is removed until a later update() sees it valid.

        Returns:
            True if the entity is registered after the call
        """
        key = id(entity)
        if key not in self._entities:
            return self.insert(entity)

        point = as_point(getattr(entity, 'position', None))
        if point is None:
            self.remove(entity)
            return False

        # Positions changed even when the cell did not; the tree must rebuild
        self._dirty = True

        new_cell = self._cell_for(point)
        old_cell = self._cell_of[key]
        if new_cell == old_cell:
            return True

        bucket = self._cells[old_cell]
        del bucket[key]
        if not bucket:
            del self._cells[old_cell]
        self._cells.setdefault(new_cell, {})[key] = entity
        self._cell_of[key] = new_cell
        return True

    def rebuild(self, entities: Iterable[Any]):
        """Clear the index and insert all entities."""
        self.clear()
        for entity in entities:
            self.insert(entity)

    def clear(self):
        self._cells.clear()
        self._cell_of.clear()
        self._entities.clear()
        self._tree = None
        self._tree_refs = []
        self._dirty = True

    def cell_of(self, entity: Any) -> Optional[Cell]:
        """Cell the entity is registered in, or None."""
        return self._cell_of.get(id(entity))

    def entities(self) -> List[Any]:
        return list(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity: Any) -> bool:
        return id(entity) in self._entities

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_radius(self, point: Any, radius: float, exact: bool = True) -> List[Any]:
        """
        Find registered entities within radius of point.

        Args:
            point: Query center [x, y]
            radius: Search radius in world units
            exact: Filter candidates by true distance (False returns every
                entity from the overlapping cells, a superset)

        Returns:
            Entities within radius, in no particular order. Empty list for
            a non-finite point or radius.
        """
        center = as_point(point)
        if center is None or radius is None or not math.isfinite(radius) or radius < 0:
            return []

        if self._use_ckdtree:
            return self._query_tree(center, radius)

        candidates = self._candidates(center, radius)
        if not exact:
            return candidates

        r_sq = radius * radius
        result = []
        for entity in candidates:
            diff = entity.position - center
            if float(np.dot(diff, diff)) <= r_sq:
                result.append(entity)
        return result

    def _candidates(self, center: np.ndarray, radius: float) -> List[Any]:
        """All entities in cells overlapping the query square."""
        min_cx, min_cy = self._cell_for(center - radius)
        max_cx, max_cy = self._cell_for(center + radius)

        span = (max_cx - min_cx + 1) * (max_cy - min_cy + 1)
        candidates: List[Any] = []

        if span > len(self._cells):
            # Query box covers more cells than are occupied: scan occupied cells
            for (cx, cy), bucket in self._cells.items():
                if min_cx <= cx <= max_cx and min_cy <= cy <= max_cy:
                    candidates.extend(bucket.values())
            return candidates

        for cx in range(min_cx, max_cx + 1):
            for cy in range(min_cy, max_cy + 1):
                bucket = self._cells.get((cx, cy))
                if bucket:
                    candidates.extend(bucket.values())
        return candidates

    def _build_tree(self):
        self._tree_refs = list(self._entities.values())
        if self._tree_refs:
            positions = np.array([e.position for e in self._tree_refs], dtype=np.float64)
            self._tree = cKDTree(positions, leafsize=self._leafsize)
        else:
            self._tree = None
        self._dirty = False
        self._build_seq += 1

    def _query_tree(self, center: np.ndarray, radius: float) -> List[Any]:
        if self._dirty:
            self._build_tree()
        if self._tree is None:
            return []
        rows = self._tree.query_ball_point(center, r=radius)
        return [self._tree_refs[row] for row in rows]
