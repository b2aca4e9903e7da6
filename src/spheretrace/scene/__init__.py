"""Scene module for scene construction and device-side storage.

Components:
    intersection: Taichi storage for spheres, materials and the BVH arena,
        plus nearest-hit queries (BVH and brute force)
    manager: SceneManager, the host-side scene-construction interface
    random_spheres: Procedural scene with many random spheres

Typical use:
    scene = SceneManager()
    scene.add_lambertian_sphere((0, -100.5, -1), 100.0, albedo=(0.5, 0.5, 0.5))
    scene.build()  # builds the BVH and uploads, required before rendering
"""

from .intersection import (
    MAX_BVH_NODES,
    MAX_SPHERES,
    clear_scene,
    get_bvh_node_count,
    get_sphere_count,
    intersect_scene,
    intersect_scene_linear,
    upload_bvh,
    upload_spheres,
)
from .manager import SceneConfig, SceneManager, SphereInfo, material_from_dict
from .random_spheres import (
    RandomSpheresParams,
    create_random_spheres_camera,
    create_random_spheres_scene,
    populate_random_spheres,
)

__all__ = [
    "MAX_SPHERES",
    "MAX_BVH_NODES",
    "clear_scene",
    "upload_spheres",
    "upload_bvh",
    "get_sphere_count",
    "get_bvh_node_count",
    "intersect_scene",
    "intersect_scene_linear",
    "SceneManager",
    "SceneConfig",
    "SphereInfo",
    "material_from_dict",
    "RandomSpheresParams",
    "create_random_spheres_scene",
    "create_random_spheres_camera",
    "populate_random_spheres",
]
