"""Lambertian (ideal diffuse) material implementation.

A Lambertian surface scatters light around the surface normal. The outgoing
direction is the normal plus a random unit vector, which distributes
scattered rays with a cosine-weighted density over the hemisphere. The
attenuation is the albedo; energy loss accumulates through the product of
attenuations along a path rather than through explicit absorption.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_lambertian(albedo, normal)
"""

from dataclasses import dataclass
from typing import Any

import taichi as ti

from spheretrace.core.vector import near_zero, random_unit_vector, vec3
from spheretrace.materials.material import MaterialParams, MaterialType, validate_albedo


@dataclass(frozen=True)
class Lambertian:
    """Lambertian (ideal diffuse) material.

    Attributes:
        albedo: The diffuse reflectance color (RGB, each component in [0, 1]).
    """

    albedo: tuple[float, float, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "albedo", validate_albedo(self.albedo))

    def params(self) -> MaterialParams:
        """Flatten into upload parameters."""
        return MaterialParams(kind=MaterialType.LAMBERTIAN, albedo=self.albedo)

    def to_dict(self) -> dict[str, Any]:
        """Export as a JSON-ready dictionary."""
        return {"type": "lambertian", "albedo": list(self.albedo)}


@ti.func
def diffuse_direction(normal: vec3, offset: vec3) -> vec3:
    """Offset the normal, replacing a near-zero result by the normal itself.

    Args:
        normal: The unit surface normal.
        offset: A unit vector added to the normal.

    Returns:
        normal + offset, or normal when the sum is nearly zero.
    """
    direction = normal + offset
    if near_zero(direction):
        direction = normal
    return direction


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3):
    """Sample a diffuse scatter direction.

    The direction is normal + random_unit_vector(). When the random vector
    nearly cancels the normal, the degenerate direction is replaced by the
    normal itself.

    Args:
        albedo: The diffuse reflectance color (RGB).
        normal: The unit surface normal, facing the incoming ray.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where:
        - scattered_direction: The sampled direction (not normalized, never zero).
        - attenuation: The albedo.
        - did_scatter: Always 1.
    """
    scattered_direction = diffuse_direction(normal, random_unit_vector())

    return scattered_direction, albedo, 1
