"""Scene-level ray intersection over uploaded spheres and their BVH.

Spheres, their materials and the flattened BVH arena live in Taichi fields
(structure-of-arrays layout). The host uploads everything in bulk after the
scene is built; kernels then query the nearest hit with either:

    - intersect_scene: stackless BVH traversal, shrinking t_max to the
      closest hit found so far
    - intersect_scene_linear: brute-force test of every sphere

Both return the same nearest hit for the same uploaded scene.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> scene.add_lambertian_sphere((0, 0, -1), 0.5, albedo=(0.5, 0.5, 0.5))
    0
    >>> scene.build()  # uploads spheres and BVH to the fields below
    >>> # Use intersect_scene(ray, t_min, t_max) within a Taichi kernel
"""

import numpy as np
import taichi as ti

from spheretrace.core.ray import Ray
from spheretrace.core.vector import vec3
from spheretrace.geometry.aabb import hit_aabb
from spheretrace.geometry.bvh import Bvh
from spheretrace.geometry.sphere import HitRecord, Sphere, hit_sphere, make_miss_record
from spheretrace.materials.material import Material

# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024

# A binary tree over MAX_SPHERES leaves never needs more nodes than this
MAX_BVH_NODES = 2 * MAX_SPHERES

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Per-sphere material values
sphere_material_kinds = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
sphere_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_fuzz = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_ior = ti.field(dtype=ti.f32, shape=MAX_SPHERES)

# BVH arena (see spheretrace.geometry.bvh for the layout)
bvh_node_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_node_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_node_escape = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_node_start = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_node_count = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_prim_indices = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_bvh_nodes = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all spheres and the BVH.

    Resets the counts to zero. The field data is not cleared but will be
    overwritten by the next upload.
    """
    num_spheres[None] = 0
    num_bvh_nodes[None] = 0


@ti.kernel
def _upload_spheres_kernel(
    n: ti.i32,
    centers: ti.types.ndarray(),
    radii: ti.types.ndarray(),
    kinds: ti.types.ndarray(),
    albedos: ti.types.ndarray(),
    fuzz: ti.types.ndarray(),
    ior: ti.types.ndarray(),
):
    for i in range(n):
        sphere_centers[i] = vec3(centers[i, 0], centers[i, 1], centers[i, 2])
        sphere_radii[i] = radii[i]
        sphere_material_kinds[i] = kinds[i]
        sphere_albedos[i] = vec3(albedos[i, 0], albedos[i, 1], albedos[i, 2])
        sphere_fuzz[i] = fuzz[i]
        sphere_ior[i] = ior[i]


def upload_spheres(
    centers: np.ndarray,
    radii: np.ndarray,
    kinds: np.ndarray,
    albedos: np.ndarray,
    fuzz: np.ndarray,
    ior: np.ndarray,
) -> int:
    """Replace the stored spheres.

    Args:
        centers: Sphere centers, shape (N, 3).
        radii: Sphere radii, shape (N,).
        kinds: MaterialType tag per sphere, shape (N,).
        albedos: Material albedo per sphere, shape (N, 3).
        fuzz: Metal fuzz per sphere, shape (N,).
        ior: Refractive index per sphere, shape (N,).

    Returns:
        The number of uploaded spheres.

    Raises:
        RuntimeError: If more than MAX_SPHERES spheres are given.
    """
    n = int(np.asarray(radii).shape[0])
    if n > MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded: got {n}")

    if n > 0:
        _upload_spheres_kernel(
            n,
            np.ascontiguousarray(centers, dtype=np.float32).reshape(n, 3),
            np.ascontiguousarray(radii, dtype=np.float32),
            np.ascontiguousarray(kinds, dtype=np.int32),
            np.ascontiguousarray(albedos, dtype=np.float32).reshape(n, 3),
            np.ascontiguousarray(fuzz, dtype=np.float32),
            np.ascontiguousarray(ior, dtype=np.float32),
        )
    num_spheres[None] = n
    return n


@ti.kernel
def _upload_bvh_kernel(
    n_nodes: ti.i32,
    n_prims: ti.i32,
    node_min: ti.types.ndarray(),
    node_max: ti.types.ndarray(),
    node_escape: ti.types.ndarray(),
    node_start: ti.types.ndarray(),
    node_count: ti.types.ndarray(),
    prim_indices: ti.types.ndarray(),
):
    for i in range(n_nodes):
        bvh_node_min[i] = vec3(node_min[i, 0], node_min[i, 1], node_min[i, 2])
        bvh_node_max[i] = vec3(node_max[i, 0], node_max[i, 1], node_max[i, 2])
        bvh_node_escape[i] = node_escape[i]
        bvh_node_start[i] = node_start[i]
        bvh_node_count[i] = node_count[i]
    for k in range(n_prims):
        bvh_prim_indices[k] = prim_indices[k]


def upload_bvh(bvh: Bvh) -> int:
    """Replace the stored BVH arena.

    Args:
        bvh: The flattened hierarchy over the uploaded spheres.

    Returns:
        The number of uploaded nodes.

    Raises:
        RuntimeError: If the arena exceeds the field capacity.
    """
    n_nodes = bvh.num_nodes
    n_prims = bvh.num_primitives
    if n_nodes > MAX_BVH_NODES or n_prims > MAX_SPHERES:
        raise RuntimeError(
            f"BVH with {n_nodes} nodes and {n_prims} primitives exceeds capacity "
            f"({MAX_BVH_NODES} nodes, {MAX_SPHERES} primitives)"
        )

    if n_nodes > 0:
        _upload_bvh_kernel(
            n_nodes,
            n_prims,
            np.ascontiguousarray(bvh.node_min, dtype=np.float32),
            np.ascontiguousarray(bvh.node_max, dtype=np.float32),
            np.ascontiguousarray(bvh.node_escape, dtype=np.int32),
            np.ascontiguousarray(bvh.node_start, dtype=np.int32),
            np.ascontiguousarray(bvh.node_count, dtype=np.int32),
            np.ascontiguousarray(bvh.prim_indices, dtype=np.int32),
        )
    num_bvh_nodes[None] = n_nodes
    return n_nodes


def get_sphere_count() -> int:
    """Get the number of uploaded spheres."""
    return int(num_spheres[None])


def get_bvh_node_count() -> int:
    """Get the number of uploaded BVH nodes."""
    return int(num_bvh_nodes[None])


@ti.func
def _load_sphere(i: ti.i32) -> Sphere:
    return Sphere(center=sphere_centers[i], radius=sphere_radii[i])


@ti.func
def _load_material(i: ti.i32) -> Material:
    return Material(
        kind=sphere_material_kinds[i],
        albedo=sphere_albedos[i],
        fuzz=sphere_fuzz[i],
        ior=sphere_ior[i],
    )


@ti.func
def intersect_scene(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Find the nearest sphere hit in [t_min, t_max] using the BVH.

    Walks the node arena in pre-order: a node whose box the ray misses (with
    the closest hit so far as the interval end) is skipped through its escape
    link, a leaf tests its primitives exactly, and an internal node descends
    to its left child at the next index.

    Args:
        ray: The ray to test.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        The HitRecord of the closest intersection, or a miss record.
    """
    closest_t = t_max
    result = make_miss_record()

    node = 0
    if num_bvh_nodes[None] == 0:
        node = -1

    while node != -1:
        if hit_aabb(ray, bvh_node_min[node], bvh_node_max[node], t_min, closest_t) == 1:
            count = bvh_node_count[node]
            if count > 0:
                start = bvh_node_start[node]
                for k in range(start, start + count):
                    idx = bvh_prim_indices[k]
                    rec = hit_sphere(ray, _load_sphere(idx), _load_material(idx), t_min, closest_t)
                    if rec.hit == 1:
                        closest_t = rec.t
                        result = rec
                node = bvh_node_escape[node]
            else:
                node = node + 1
        else:
            node = bvh_node_escape[node]

    return result


@ti.func
def intersect_scene_linear(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Find the nearest sphere hit in [t_min, t_max] by testing every sphere.

    Args:
        ray: The ray to test.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        The HitRecord of the closest intersection, or a miss record.
    """
    closest_t = t_max
    result = make_miss_record()

    n = num_spheres[None]
    for i in range(n):
        rec = hit_sphere(ray, _load_sphere(i), _load_material(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = rec

    return result
