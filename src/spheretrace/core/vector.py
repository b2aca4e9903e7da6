"""Vector algebra and random sampling utilities for Taichi kernels.

The 3-component vector type is Taichi's ``vec3``. It is used both as a
geometric vector and as an unnormalized RGB color; its arithmetic operators
are componentwise. This module adds the true vector operations (dot, cross,
normalization), the reflection/refraction helpers shared by the materials,
and the random-vector generators used for Monte Carlo sampling.

Every random generator draws from ``ti.random``, whose state is private to
the Taichi thread executing the call, so no generator state is shared between
pixels rendered in parallel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.vector import random_unit_vector, vec3
    >>> # Use within a Taichi kernel:
    >>> # direction = normal + random_unit_vector()
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Components below this magnitude count as zero in near_zero()
NEAR_ZERO_EPSILON = 1e-8

# Upper bound on rejection-sampling attempts. The acceptance rate is above 50%
# for the sphere and above 75% for the disk, so the bound is never reached in
# practice.
MAX_REJECTION_ATTEMPTS = 64


# =============================================================================
# Vector Operations
# =============================================================================


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return ti.sqrt(length_squared(v))


@ti.func
def unit_vector(v: vec3) -> vec3:
    """Scale a vector to unit length.

    The caller must guarantee a non-zero length. A zero vector produces
    non-finite components, which the render loop discards per sample.

    Args:
        v: The input vector.

    Returns:
        v divided by its length.
    """
    return v / length(v)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check whether every component of a vector is close to zero.

    Used to detect degenerate scatter directions.

    Args:
        v: The vector to check.

    Returns:
        1 if all components are below NEAR_ZERO_EPSILON in magnitude, 0 otherwise.
    """
    result = 0
    if (
        ti.abs(v.x) < NEAR_ZERO_EPSILON
        and ti.abs(v.y) < NEAR_ZERO_EPSILON
        and ti.abs(v.z) < NEAR_ZERO_EPSILON
    ):
        result = 1
    return result


@ti.func
def reflect(v: vec3, n: vec3) -> vec3:
    """Mirror a direction about a normal: v - 2(v . n)n.

    Args:
        v: The incoming direction (pointing toward the surface).
        n: The unit surface normal.

    Returns:
        The reflected direction.
    """
    return v - 2.0 * tm.dot(v, n) * n


@ti.func
def refract(uv: vec3, n: vec3, etai_over_etat: ti.f32) -> vec3:
    """Bend a unit direction through a surface using Snell's law.

    The result is the sum of the components perpendicular and parallel to
    the normal. The caller handles total internal reflection beforehand.

    Args:
        uv: The unit incoming direction.
        n: The unit normal on the side of the incoming ray.
        etai_over_etat: Ratio of refractive indices (incident / transmitted).

    Returns:
        The refracted direction.
    """
    cos_theta = tm.min(tm.dot(-uv, n), 1.0)
    r_out_perp = etai_over_etat * (uv + cos_theta * n)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * n
    return r_out_perp + r_out_parallel


@ti.func
def reflectance(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Schlick's approximation of the Fresnel reflectance.

    Args:
        cosine: Cosine of the angle between incoming direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The probability of reflection in [0, 1].
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


# =============================================================================
# Random Vector Generators
# =============================================================================


@ti.func
def random_vec() -> vec3:
    """Uniform random vector in the unit cube [0, 1)^3."""
    return vec3(ti.random(ti.f32), ti.random(ti.f32), ti.random(ti.f32))


@ti.func
def random_vec_range(lo: ti.f32, hi: ti.f32) -> vec3:
    """Uniform random vector in the cube [lo, hi)^3."""
    return lo + (hi - lo) * random_vec()


@ti.func
def random_in_unit_sphere() -> vec3:
    """Uniform random point strictly inside the unit sphere.

    Samples the cube [-1, 1)^3 and rejects points with squared length >= 1.

    Returns:
        A random point with length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            p = random_vec_range(-1.0, 1.0)
            if length_squared(p) < 1.0:
                found = 1
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Random unit vector, uniformly distributed on the sphere surface."""
    return unit_vector(random_in_unit_sphere())


@ti.func
def random_in_unit_disk() -> vec3:
    """Uniform random point inside the unit disk in the xy-plane.

    Used for lens sampling. The z component is always 0.

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            p = vec3(ti.random(ti.f32) * 2.0 - 1.0, ti.random(ti.f32) * 2.0 - 1.0, 0.0)
            if p.x * p.x + p.y * p.y < 1.0:
                found = 1
    return p
