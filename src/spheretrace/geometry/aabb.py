"""Axis-aligned bounding boxes.

A box is stored as two corners, box_min and box_max. The device-side slab
test runs inside BVH traversal; the host-side helpers are used while building
the hierarchy and by the host candidate query.

The slab test uses the ray's precomputed inverse direction. A zero direction
component yields infinite slab distances, which the min/max reduction handles
as long as the ray origin does not lie exactly on that slab plane.

Example:
    >>> import numpy as np
    >>> from spheretrace.geometry.aabb import surface_area
    >>> surface_area(np.zeros(3), np.ones(3))
    6.0
"""

import numpy as np
import taichi as ti

from spheretrace.core.ray import Ray
from spheretrace.core.vector import vec3


@ti.func
def hit_aabb(ray: Ray, box_min: vec3, box_max: vec3, t_min: ti.f32, t_max: ti.f32) -> ti.i32:
    """Slab test of a ray against a box over the interval [t_min, t_max].

    Args:
        ray: The ray to test.
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.
        t_min: Start of the ray interval.
        t_max: End of the ray interval.

    Returns:
        1 if the ray overlaps the box inside the interval, 0 otherwise.
    """
    t0 = (box_min - ray.origin) * ray.inv_direction
    t1 = (box_max - ray.origin) * ray.inv_direction
    t_near = ti.min(t0, t1)
    t_far = ti.max(t0, t1)

    enter = ti.max(t_min, ti.max(ti.max(t_near.x, t_near.y), t_near.z))
    exit_ = ti.min(t_max, ti.min(ti.min(t_far.x, t_far.y), t_far.z))

    result = 0
    if enter <= exit_:
        result = 1
    return result


# =============================================================================
# Host-side helpers
# =============================================================================


def empty_box() -> tuple[np.ndarray, np.ndarray]:
    """Return an inverted box that any union will replace."""
    return (
        np.full(3, np.inf, dtype=np.float64),
        np.full(3, -np.inf, dtype=np.float64),
    )


def surrounding_box(
    min_a: np.ndarray, max_a: np.ndarray, min_b: np.ndarray, max_b: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Smallest box containing both input boxes."""
    return np.minimum(min_a, min_b), np.maximum(max_a, max_b)


def surface_area(box_min: np.ndarray, box_max: np.ndarray) -> float:
    """Surface area of a box. Empty (inverted) boxes have zero area."""
    extent = np.maximum(np.asarray(box_max) - np.asarray(box_min), 0.0)
    return float(2.0 * (extent[0] * extent[1] + extent[1] * extent[2] + extent[2] * extent[0]))


def ray_hits_boxes(
    origin: np.ndarray,
    direction: np.ndarray,
    boxes_min: np.ndarray,
    boxes_max: np.ndarray,
    t_min: float,
    t_max: float,
) -> np.ndarray:
    """Vectorized slab test of one ray against many boxes.

    Args:
        origin: Ray origin, shape (3,).
        direction: Ray direction, shape (3,).
        boxes_min: Minimum corners, shape (N, 3).
        boxes_max: Maximum corners, shape (N, 3).
        t_min: Start of the ray interval.
        t_max: End of the ray interval.

    Returns:
        Boolean array of shape (N,), True where the ray overlaps the box.
    """
    origin = np.asarray(origin, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)

    with np.errstate(divide="ignore", invalid="ignore"):
        inv_direction = 1.0 / direction
        t0 = (boxes_min - origin) * inv_direction
        t1 = (boxes_max - origin) * inv_direction

    t_near = np.fmin(t0, t1)
    t_far = np.fmax(t0, t1)
    enter = np.maximum(t_min, t_near.max(axis=1))
    exit_ = np.minimum(t_max, t_far.min(axis=1))
    return enter <= exit_
