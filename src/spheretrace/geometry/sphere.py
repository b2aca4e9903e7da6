"""Sphere primitive and the hit record shared by all intersection queries.

The ray-sphere intersection solves

    |origin + t * direction - center|^2 = radius^2

with the half-b form of the quadratic:

    a = dot(direction, direction)
    h = dot(oc, direction)          (oc = origin - center)
    c = dot(oc, oc) - radius^2
    discriminant = h^2 - a*c

The smaller root (-h - sqrt(d)) / a is accepted first, the larger root
second; both are tested against the inclusive interval [t_min, t_max].

The stored normal always opposes the incoming ray, and front_face records
whether the ray arrived from outside the sphere.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.geometry.sphere import Sphere, hit_sphere
    >>> # Use hit_sphere within a Taichi kernel:
    >>> # rec = hit_sphere(ray, sphere, material, 0.001, tm.inf)
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import Ray, ray_at
from spheretrace.core.vector import vec3
from spheretrace.materials.material import Material, make_no_material


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-surface intersection.

    Attributes:
        hit: Whether the ray intersected a surface (1 if hit, 0 if miss).
        t: The ray parameter of the intersection. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: Unit surface normal, facing against the incoming ray.
            Only valid if hit == 1.
        front_face: 1 if the ray hit the outside of the surface, 0 if it hit
            from within. Only valid if hit == 1.
        material: The material of the struck surface, copied by value.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material: Material


@ti.func
def set_face_normal(ray: Ray, outward_normal: vec3):
    """Orient a geometric normal against the incoming ray.

    Args:
        ray: The incoming ray.
        outward_normal: The unit normal pointing out of the surface.

    Returns:
        A tuple of (normal, front_face) where front_face is 1 when the ray
        arrives from outside (dot(direction, outward_normal) < 0).
    """
    front_face = 0
    normal = -outward_normal
    if tm.dot(ray.direction, outward_normal) < 0.0:
        front_face = 1
        normal = outward_normal
    return normal, front_face


@ti.func
def make_miss_record() -> HitRecord:
    """Create a record that reports no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material=make_no_material(),
    )


@ti.func
def hit_sphere(
    ray: Ray,
    sphere: Sphere,
    material: Material,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection within [t_min, t_max].

    Args:
        ray: The ray to test (direction need not be normalized).
        sphere: The sphere to test against.
        material: The sphere's material, copied into the record on a hit.
        t_min: Minimum accepted t, inclusive (avoids self-intersection).
        t_max: Maximum accepted t, inclusive (closest hit found so far).

    Returns:
        A HitRecord. Check the hit field to determine if an intersection
        occurred.
    """
    oc = ray.origin - sphere.center
    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(oc, ray.direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    rec = make_miss_record()

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        t = (-h - sqrt_d) / a
        valid = t_min <= t and t <= t_max
        if not valid:
            t = (-h + sqrt_d) / a
            valid = t_min <= t and t <= t_max

        if valid:
            point = ray_at(ray, t)
            outward_normal = (point - sphere.center) / sphere.radius
            normal, front_face = set_face_normal(ray, outward_normal)
            rec = HitRecord(
                hit=1,
                t=t,
                point=point,
                normal=normal,
                front_face=front_face,
                material=material,
            )

    return rec


def sphere_bounds(center, radius: float) -> tuple[np.ndarray, np.ndarray]:
    """Axis-aligned bounds of a sphere: center -/+ |radius| on every axis.

    Args:
        center: The sphere center as (x, y, z).
        radius: The sphere radius.

    Returns:
        Tuple of (box_min, box_max) as float64 arrays of shape (3,).
    """
    c = np.asarray(center, dtype=np.float64)
    r = abs(float(radius))
    return c - r, c + r
