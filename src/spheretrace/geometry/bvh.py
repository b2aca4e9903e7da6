"""Bounding volume hierarchy over sphere bounds.

The hierarchy is built on the host with numpy and flattened into a node arena
that Taichi kernels traverse without a stack:

    - Nodes are stored in depth-first pre-order, so the left child of an
      internal node i is node i + 1.
    - node_escape[i] is the next node to visit once the subtree rooted at i
      has been handled or skipped. -1 ends the traversal.
    - node_count[i] > 0 marks a leaf holding prim_indices[start:start+count];
      internal nodes have a count of 0.

Splits use a binned surface-area heuristic on the axis of largest centroid
extent. When no bin boundary separates the centroids, the primitives are
sorted along that axis and split at the median. Leaves hold at most
MAX_LEAF_SIZE primitives.

Primitive boxes are padded by BOX_PADDING so that the single-precision slab
test never rejects a box whose sphere the exact test would hit.

Example:
    >>> import numpy as np
    >>> from spheretrace.geometry.bvh import Bvh
    >>> centers = np.array([[0.0, 0.0, -1.0], [0.0, -100.5, -1.0]])
    >>> radii = np.array([0.5, 100.0])
    >>> bvh = Bvh.from_spheres(centers, radii)
    >>> bvh.candidates((0, 0, 0), (0, 0, -1), 0.001, np.inf)
    array([0, 1], dtype=int32)
"""

from dataclasses import dataclass, field

import numpy as np

from spheretrace.geometry.aabb import ray_hits_boxes, surface_area

# Maximum number of primitives stored in a leaf
MAX_LEAF_SIZE = 4

# Number of centroid bins evaluated per split
SAH_BIN_COUNT = 12

# Cost of visiting an extra node, relative to one primitive test
SAH_TRAVERSAL_COST = 0.125

# Padding added to every primitive box
BOX_PADDING = 1e-4


@dataclass
class _BuildNode:
    """Node emitted during construction, before escape links are known."""

    box_min: np.ndarray
    box_max: np.ndarray
    parent: int
    is_left: bool
    start: int = 0
    count: int = 0
    right: int = -1


@dataclass
class Bvh:
    """Flattened bounding volume hierarchy.

    Attributes:
        node_min: Minimum box corners, shape (N, 3), float32.
        node_max: Maximum box corners, shape (N, 3), float32.
        node_escape: Next node after skipping each subtree, shape (N,), int32.
        node_start: First slot in prim_indices for leaves, shape (N,), int32.
        node_count: Primitive count for leaves, 0 for internal nodes.
        prim_indices: Primitive indices grouped by leaf, shape (P,), int32.
        leaf_of: Leaf node holding each primitive, shape (P,), int32.
    """

    node_min: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), np.float32))
    node_max: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), np.float32))
    node_escape: np.ndarray = field(default_factory=lambda: np.zeros(0, np.int32))
    node_start: np.ndarray = field(default_factory=lambda: np.zeros(0, np.int32))
    node_count: np.ndarray = field(default_factory=lambda: np.zeros(0, np.int32))
    prim_indices: np.ndarray = field(default_factory=lambda: np.zeros(0, np.int32))
    leaf_of: np.ndarray = field(default_factory=lambda: np.zeros(0, np.int32))

    @property
    def num_nodes(self) -> int:
        """Number of nodes in the arena."""
        return int(self.node_escape.shape[0])

    @property
    def num_primitives(self) -> int:
        """Number of primitives referenced by the leaves."""
        return int(self.prim_indices.shape[0])

    def is_leaf(self, node: int) -> bool:
        """Check whether a node is a leaf."""
        return bool(self.node_count[node] > 0)

    @classmethod
    def from_spheres(cls, centers, radii) -> "Bvh":
        """Build a hierarchy over spheres.

        Args:
            centers: Sphere centers, shape (P, 3).
            radii: Sphere radii, shape (P,).

        Returns:
            The flattened hierarchy. An empty input gives an empty arena.
        """
        centers = np.asarray(centers, dtype=np.float64).reshape(-1, 3)
        radii = np.abs(np.asarray(radii, dtype=np.float64).reshape(-1))
        if centers.shape[0] != radii.shape[0]:
            raise ValueError(
                f"Got {centers.shape[0]} centers but {radii.shape[0]} radii"
            )
        return cls.build(centers - radii[:, None], centers + radii[:, None])

    @classmethod
    def build(cls, boxes_min, boxes_max) -> "Bvh":
        """Build a hierarchy over arbitrary primitive boxes.

        Args:
            boxes_min: Minimum corners of the primitive boxes, shape (P, 3).
            boxes_max: Maximum corners of the primitive boxes, shape (P, 3).

        Returns:
            The flattened hierarchy.
        """
        boxes_min = np.asarray(boxes_min, dtype=np.float64).reshape(-1, 3) - BOX_PADDING
        boxes_max = np.asarray(boxes_max, dtype=np.float64).reshape(-1, 3) + BOX_PADDING
        num_prims = boxes_min.shape[0]
        if num_prims == 0:
            return cls()

        centroids = 0.5 * (boxes_min + boxes_max)
        nodes: list[_BuildNode] = []
        prim_order: list[np.ndarray] = []
        prim_cursor = 0

        # Explicit stack keeps deep, unbalanced splits off the Python call stack.
        # The left subtree is pushed last so it is emitted right after its parent.
        stack = [(np.arange(num_prims), -1, False)]
        while stack:
            indices, parent, is_left = stack.pop()
            node_index = len(nodes)
            node = _BuildNode(
                box_min=boxes_min[indices].min(axis=0),
                box_max=boxes_max[indices].max(axis=0),
                parent=parent,
                is_left=is_left,
            )
            nodes.append(node)
            if parent >= 0 and not is_left:
                nodes[parent].right = node_index

            if len(indices) <= MAX_LEAF_SIZE:
                node.start = prim_cursor
                node.count = len(indices)
                prim_order.append(indices)
                prim_cursor += len(indices)
                continue

            left, right = _split(indices, centroids, boxes_min, boxes_max, node)
            stack.append((right, node_index, False))
            stack.append((left, node_index, True))

        return cls._flatten(nodes, np.concatenate(prim_order), num_prims)

    @classmethod
    def _flatten(cls, nodes: list[_BuildNode], prim_indices: np.ndarray, num_prims: int) -> "Bvh":
        num_nodes = len(nodes)
        node_min = np.empty((num_nodes, 3), dtype=np.float32)
        node_max = np.empty((num_nodes, 3), dtype=np.float32)
        node_escape = np.full(num_nodes, -1, dtype=np.int32)
        node_start = np.zeros(num_nodes, dtype=np.int32)
        node_count = np.zeros(num_nodes, dtype=np.int32)
        leaf_of = np.full(num_prims, -1, dtype=np.int32)

        # Pre-order puts every parent before its children.
        for i, node in enumerate(nodes):
            # Round outward so the float32 box still contains the float64 one
            node_min[i] = np.nextafter(node.box_min.astype(np.float32), np.float32(-np.inf))
            node_max[i] = np.nextafter(node.box_max.astype(np.float32), np.float32(np.inf))
            node_start[i] = node.start
            node_count[i] = node.count
            if node.parent >= 0:
                if node.is_left:
                    node_escape[i] = nodes[node.parent].right
                else:
                    node_escape[i] = node_escape[node.parent]
            if node.count > 0:
                leaf_of[prim_indices[node.start : node.start + node.count]] = i

        return cls(
            node_min=node_min,
            node_max=node_max,
            node_escape=node_escape,
            node_start=node_start,
            node_count=node_count,
            prim_indices=prim_indices.astype(np.int32),
            leaf_of=leaf_of,
        )

    def candidates(self, origin, direction, t_min: float = 0.0, t_max: float = np.inf) -> np.ndarray:
        """Primitives whose leaf box, and every ancestor box, the ray overlaps.

        Walks the arena exactly as the device traversal does, but without
        shrinking t_max, so the result contains the primitive of the nearest
        hit in [t_min, t_max] if there is one.

        Args:
            origin: Ray origin as (x, y, z).
            direction: Ray direction as (x, y, z).
            t_min: Start of the ray interval.
            t_max: End of the ray interval.

        Returns:
            Candidate primitive indices (int32) in traversal order.
        """
        if self.num_nodes == 0:
            return np.zeros(0, dtype=np.int32)

        box_hit = ray_hits_boxes(origin, direction, self.node_min, self.node_max, t_min, t_max)

        found = []
        node = 0
        while node != -1:
            if not box_hit[node]:
                node = int(self.node_escape[node])
            elif self.node_count[node] > 0:
                start = int(self.node_start[node])
                found.append(self.prim_indices[start : start + int(self.node_count[node])])
                node = int(self.node_escape[node])
            else:
                node += 1

        if not found:
            return np.zeros(0, dtype=np.int32)
        return np.concatenate(found).astype(np.int32)


def _split(
    indices: np.ndarray,
    centroids: np.ndarray,
    boxes_min: np.ndarray,
    boxes_max: np.ndarray,
    node: _BuildNode,
) -> tuple[np.ndarray, np.ndarray]:
    """Partition a node's primitives into two non-empty halves."""
    node_centroids = centroids[indices]
    c_min = node_centroids.min(axis=0)
    c_max = node_centroids.max(axis=0)
    axis = int(np.argmax(c_max - c_min))
    extent = c_max[axis] - c_min[axis]

    if extent > 0.0:
        bins = ((node_centroids[:, axis] - c_min[axis]) * (SAH_BIN_COUNT / extent)).astype(np.int64)
        bins = np.minimum(bins, SAH_BIN_COUNT - 1)

        best_cost = np.inf
        best_split = -1
        parent_area = max(surface_area(node.box_min, node.box_max), 1e-12)
        for split in range(1, SAH_BIN_COUNT):
            left_mask = bins < split
            n_left = int(left_mask.sum())
            n_right = len(indices) - n_left
            if n_left == 0 or n_right == 0:
                continue
            left = indices[left_mask]
            right = indices[~left_mask]
            area_left = surface_area(boxes_min[left].min(axis=0), boxes_max[left].max(axis=0))
            area_right = surface_area(boxes_min[right].min(axis=0), boxes_max[right].max(axis=0))
            cost = SAH_TRAVERSAL_COST + (n_left * area_left + n_right * area_right) / parent_area
            if cost < best_cost:
                best_cost = cost
                best_split = split

        if best_split > 0:
            left_mask = bins < best_split
            return indices[left_mask], indices[~left_mask]

    # Median split along the chosen axis
    order = indices[np.argsort(node_centroids[:, axis], kind="stable")]
    half = len(order) // 2
    return order[:half], order[half:]
