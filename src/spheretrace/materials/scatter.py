"""Material scatter dispatch.

Given an incoming ray and the hit record produced by an intersection query,
scatter() selects the variant from the material tag copied into the record
and returns the outgoing ray and its attenuation. Scattered rays start at the
hit point.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.scatter import scatter
    >>> # Use within a Taichi kernel:
    >>> # scattered, attenuation, did_scatter = scatter(ray, hit_record)
"""

import taichi as ti

from spheretrace.core.ray import Ray, make_ray
from spheretrace.core.vector import vec3
from spheretrace.geometry.sphere import HitRecord
from spheretrace.materials.dielectric import scatter_dielectric
from spheretrace.materials.lambertian import scatter_lambertian
from spheretrace.materials.material import MaterialType
from spheretrace.materials.metal import scatter_metal


@ti.func
def scatter(ray: Ray, rec: HitRecord):
    """Dispatch to the scatter function of the hit material.

    Args:
        ray: The incoming ray.
        rec: The hit record, including the material of the struck sphere.

    Returns:
        A tuple of (scattered_ray, attenuation, did_scatter) where:
        - scattered_ray: The outgoing ray from the hit point. Only valid if
          did_scatter == 1.
        - attenuation: The color multiplier for this bounce.
        - did_scatter: 1 if a ray was produced, 0 for absorption (also used
          for unknown material tags).
    """
    kind = rec.material.kind

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if kind == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter = scatter_lambertian(
            rec.material.albedo, rec.normal
        )

    elif kind == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter = scatter_metal(
            rec.material.albedo, rec.material.fuzz, ray.direction, rec.normal
        )

    elif kind == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter = scatter_dielectric(
            rec.material.ior, ray.direction, rec.normal, rec.front_face
        )

    scattered = make_ray(rec.point, scattered_direction)
    return scattered, attenuation, did_scatter
