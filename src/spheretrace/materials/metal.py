"""Metal (specular reflective) material implementation.

A metal mirrors the unit incoming direction about the surface normal:
    R = I - 2(I . N)N

then perturbs the reflection by fuzz * random_in_unit_sphere(), where fuzz
in [0, 1] controls how blurry the reflection is (0 = perfect mirror).

A fuzzed reflection can end up pointing below the surface. Such rays are
still returned as scattered rather than absorbed, which keeps the rendered
output of existing scenes unchanged.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_metal(
    >>> #     albedo, fuzz, incident_dir, normal
    >>> # )
"""

from dataclasses import dataclass
from typing import Any

import taichi as ti

from spheretrace.core.vector import random_in_unit_sphere, reflect, unit_vector, vec3
from spheretrace.materials.material import MaterialParams, MaterialType, validate_albedo


@dataclass(frozen=True)
class Metal:
    """Metal (specular reflective) material.

    Attributes:
        albedo: The reflective color (RGB, each component in [0, 1]).
        fuzz: Reflection perturbation in [0, 1]. Values above 1 are clamped
            to 1.
    """

    albedo: tuple[float, float, float]
    fuzz: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "albedo", validate_albedo(self.albedo))

        if self.fuzz < 0.0:
            raise ValueError(
                f"Fuzz = {self.fuzz} is negative. "
                "Fuzz must be between 0 (perfect mirror) and 1 (maximum fuzz)."
            )
        object.__setattr__(self, "fuzz", float(min(self.fuzz, 1.0)))

    def params(self) -> MaterialParams:
        """Flatten into upload parameters."""
        return MaterialParams(kind=MaterialType.METAL, albedo=self.albedo, fuzz=self.fuzz)

    def to_dict(self) -> dict[str, Any]:
        """Export as a JSON-ready dictionary."""
        return {"type": "metal", "albedo": list(self.albedo), "fuzz": self.fuzz}


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
):
    """Compute the scattered direction for a metal surface.

    Args:
        albedo: The reflective color (RGB).
        fuzz: The reflection perturbation in [0, 1].
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing the incoming ray.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where:
        - scattered_direction: The fuzzed reflection (not normalized).
        - attenuation: The albedo.
        - did_scatter: Always 1.
    """
    reflected = reflect(unit_vector(incident_direction), normal)
    scattered_direction = reflected + fuzz * random_in_unit_sphere()
    return scattered_direction, albedo, 1
