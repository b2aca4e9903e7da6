"""Geometry module for shape primitives and spatial acceleration.

Components:
    sphere: Sphere primitive, HitRecord and ray-sphere intersection
    aabb: Axis-aligned bounding box slab test and host helpers
    bvh: Bounding volume hierarchy built on the host into a flat node arena

Intersection routines are Taichi functions (@ti.func) that follow one
pattern:

    rec = hit_shape(ray, shape, material, t_min, t_max)

where rec.hit == 0 signals a miss. The BVH is built with numpy and uploaded
to Taichi fields by the scene module.
"""

from .aabb import empty_box, hit_aabb, ray_hits_boxes, surface_area, surrounding_box
from .bvh import BOX_PADDING, MAX_LEAF_SIZE, Bvh
from .sphere import (
    HitRecord,
    Sphere,
    hit_sphere,
    make_miss_record,
    set_face_normal,
    sphere_bounds,
)

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_miss_record",
    "set_face_normal",
    "sphere_bounds",
    "hit_aabb",
    "empty_box",
    "surrounding_box",
    "surface_area",
    "ray_hits_boxes",
    "Bvh",
    "BOX_PADDING",
    "MAX_LEAF_SIZE",
]
