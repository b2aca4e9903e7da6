"""Dielectric (glass/water) material implementation.

Dielectrics are transparent: an incoming ray is either reflected or refracted,
never absorbed, and the attenuation is always white.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Total internal reflection when ratio * sin(theta) > 1
    - Schlick's approximation for the Fresnel reflectance

The refraction ratio depends on the side of the surface being hit: 1 / ior
when entering the material (front face), ior when leaving it. When refraction
is possible, the material reflects with probability equal to the Schlick
reflectance and refracts otherwise.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_dielectric(
    >>> #     ior, incident_dir, normal, front_face
    >>> # )
"""

from dataclasses import dataclass
from typing import Any

import taichi as ti
import taichi.math as tm

from spheretrace.core.vector import reflect, reflectance, refract, unit_vector, vec3
from spheretrace.materials.material import MaterialParams, MaterialType


@dataclass(frozen=True)
class Dielectric:
    """Dielectric (glass/water) material.

    Attributes:
        refractive_index: Index of refraction. Common values:
            - Air: 1.0
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4
    """

    refractive_index: float = 1.5

    def __post_init__(self) -> None:
        if self.refractive_index <= 0.0:
            raise ValueError(
                f"Index of refraction = {self.refractive_index} must be positive."
            )
        object.__setattr__(self, "refractive_index", float(self.refractive_index))

    def params(self) -> MaterialParams:
        """Flatten into upload parameters."""
        return MaterialParams(
            kind=MaterialType.DIELECTRIC,
            albedo=(1.0, 1.0, 1.0),
            ior=self.refractive_index,
        )

    def to_dict(self) -> dict[str, Any]:
        """Export as a JSON-ready dictionary."""
        return {"type": "dielectric", "refractive_index": self.refractive_index}


@ti.func
def refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """Ratio of refractive indices for the side of the surface being hit.

    Args:
        ior: Index of refraction of the material.
        front_face: 1 if the ray enters the material, 0 if it leaves it.

    Returns:
        1 / ior when entering, ior when leaving.
    """
    ratio = ior
    if front_face == 1:
        ratio = 1.0 / ior
    return ratio


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Compute the scattered direction for a dielectric surface.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing the incoming ray.
        front_face: 1 if the ray hit the outside of the surface, 0 if it
            hit from within the material.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where:
        - scattered_direction: The reflected or refracted direction.
        - attenuation: White, since clear dielectrics do not absorb.
        - did_scatter: Always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    ratio = refraction_ratio(ior, front_face)

    unit_direction = unit_vector(incident_direction)
    cos_theta = tm.min(tm.dot(-unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(ti.max(1.0 - cos_theta * cos_theta, 0.0))

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if ratio * sin_theta > 1.0 or ti.random(ti.f32) < reflectance(cos_theta, ratio):
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, ratio)

    return scattered_direction, attenuation, 1
