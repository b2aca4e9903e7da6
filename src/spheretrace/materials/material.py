"""Material tagged union shared by all surface variants.

Materials form a closed set of variants: Lambertian, Metal and Dielectric.
On the device side a material is a small value struct (tag plus the union of
all variant parameters) that is stored per sphere and copied into every hit
record. On the host side each variant is a frozen dataclass that validates
its parameters and flattens itself into MaterialParams for upload.

Example:
    >>> from spheretrace.materials.lambertian import Lambertian
    >>> params = Lambertian(albedo=(0.8, 0.3, 0.3)).params()
    >>> params.kind
    <MaterialType.LAMBERTIAN: 0>
"""

from dataclasses import dataclass
from enum import IntEnum

import taichi as ti

from spheretrace.core.vector import vec3


class MaterialType(IntEnum):
    """Enumeration of supported material variants.

    Used as the tag of the Material struct for scatter dispatch.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Tag value for "no material" (miss records)
NO_MATERIAL = -1


@ti.dataclass
class Material:
    """Device-side material value: a tag plus the union of variant parameters.

    Attributes:
        kind: The MaterialType tag, or NO_MATERIAL.
        albedo: Reflectance color for Lambertian and Metal.
        fuzz: Reflection perturbation radius for Metal, in [0, 1].
        ior: Refractive index for Dielectric.
    """

    kind: ti.i32
    albedo: vec3
    fuzz: ti.f32
    ior: ti.f32


@ti.func
def make_no_material() -> Material:
    """Create the placeholder material carried by miss records."""
    return Material(kind=NO_MATERIAL, albedo=vec3(0.0, 0.0, 0.0), fuzz=0.0, ior=1.0)


@dataclass(frozen=True)
class MaterialParams:
    """Flattened host-side material parameters, ready for upload.

    Attributes:
        kind: The material variant tag.
        albedo: Reflectance color (unused by Dielectric).
        fuzz: Metal fuzz (0 for other variants).
        ior: Refractive index (1 for non-dielectrics).
    """

    kind: MaterialType
    albedo: tuple[float, float, float] = (0.0, 0.0, 0.0)
    fuzz: float = 0.0
    ior: float = 1.0


def validate_albedo(albedo: tuple[float, float, float]) -> tuple[float, float, float]:
    """Check that an albedo has three components in [0, 1].

    Args:
        albedo: The color as (R, G, B).

    Returns:
        The albedo as a tuple of floats.

    Raises:
        ValueError: If the albedo does not have three components or any
            component is outside [0, 1].
    """
    if len(albedo) != 3:
        raise ValueError(f"Albedo must have 3 components, got {len(albedo)}")

    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    return (float(albedo[0]), float(albedo[1]), float(albedo[2]))
