"""Materials module for surface scattering models.

Materials are a closed set of variants, each stored per sphere as a tagged
value:

Components:
    material: MaterialType tag, device Material struct and host MaterialParams
    lambertian: Ideal diffuse reflection
    metal: Specular reflection with optional fuzz
    dielectric: Glass-like refraction with Schlick reflectance
    scatter: Dispatch from a hit record to the variant's scatter function

Each variant provides a frozen host dataclass that validates its parameters
and a Taichi function returning (direction, attenuation, did_scatter).
"""

from .dielectric import Dielectric, refraction_ratio, scatter_dielectric
from .lambertian import Lambertian, diffuse_direction, scatter_lambertian
from .material import (
    NO_MATERIAL,
    Material,
    MaterialParams,
    MaterialType,
    make_no_material,
    validate_albedo,
)
from .metal import Metal, scatter_metal

# Note: scatter is NOT imported here to avoid circular imports with geometry.
# Import directly from spheretrace.materials.scatter.

__all__ = [
    "MaterialType",
    "Material",
    "MaterialParams",
    "NO_MATERIAL",
    "make_no_material",
    "validate_albedo",
    # Lambertian
    "Lambertian",
    "diffuse_direction",
    "scatter_lambertian",
    # Metal
    "Metal",
    "scatter_metal",
    # Dielectric
    "Dielectric",
    "refraction_ratio",
    "scatter_dielectric",
]
