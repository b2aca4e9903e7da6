"""Taichi-based Monte Carlo path tracer for sphere scenes.

This package renders scenes made of spheres with Lambertian, metal and
dielectric surfaces, using Taichi kernels parallelised over pixels:
- Closed-form ray/sphere intersection
- Bounding volume hierarchy stored as a flat node arena
- Thin-lens camera with depth of field
- Per-pixel supersampling with gamma-2 tone mapping to 8-bit output

Subpackages:
    core: Vector algebra, rays, the radiance estimator and the render loop
    geometry: Sphere primitive, bounding boxes and the BVH builder
    materials: Material variants and scattering functions
    scene: Scene storage, scene-level intersection and scene builders
    camera: Thin-lens camera with ray generation
    preview: Image orientation and PNG export
"""

__version__ = "0.1.0"
