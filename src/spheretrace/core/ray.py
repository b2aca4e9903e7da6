"""Ray data structure for Taichi kernels.

A ray is an origin and a direction. The direction is not required to be unit
length; callers normalize it where direction semantics need it (scattering,
sky lookup). Each ray also carries the componentwise reciprocal of its
direction so that bounding-box slab tests need no divisions.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.ray import make_ray, ray_at, vec3
    >>> # Use within a Taichi kernel:
    >>> # ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
    >>> # point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti

from spheretrace.core.vector import vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3), not necessarily
            normalized.
        inv_direction: Componentwise 1 / direction. Zero components map to
            infinities, which the slab test handles.
    """

    origin: vec3
    direction: vec3
    inv_direction: vec3


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray and precompute its inverse direction.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector.

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, inv_direction=1.0 / direction)


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point origin + t * direction.

    Args:
        ray: The ray to evaluate.
        t: The ray parameter. Positive values lie in front of the origin.

    Returns:
        The point along the ray at parameter t.
    """
    return ray.origin + t * ray.direction
