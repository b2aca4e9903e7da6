"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    vector: Vector algebra, reflection/refraction and random generators
    ray: Ray data structure with precomputed inverse direction
    integrator: Radiance estimator, render loop and tone mapping
    progressive: Band-by-band rendering with progress and cancellation

The radiance estimator follows scattered rays for a bounded number of
bounces, multiplying the per-bounce attenuation into a running throughput,
and the render loop averages many jittered samples per pixel.

All compute-intensive operations use Taichi kernels parallelised over pixels.
"""

from .ray import Ray, make_ray, ray_at
from .vector import (
    cross,
    dot,
    length,
    length_squared,
    near_zero,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    random_vec,
    random_vec_range,
    reflect,
    reflectance,
    refract,
    unit_vector,
    vec3,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from spheretrace.core.integrator or spheretrace.core.progressive.

__all__ = [
    "Ray",
    "make_ray",
    "ray_at",
    "vec3",
    "dot",
    "cross",
    "length",
    "length_squared",
    "unit_vector",
    "near_zero",
    "reflect",
    "refract",
    "reflectance",
    "random_vec",
    "random_vec_range",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]
