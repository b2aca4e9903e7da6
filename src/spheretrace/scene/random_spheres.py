"""Procedural "many random spheres" scene.

A large grey ground sphere carries a jittered 22 x 22 grid of small spheres
with randomly chosen materials, plus three large feature spheres: glass,
brown diffuse and polished metal. Small spheres too close to the metal
feature sphere are skipped.

Placement draws from numpy.random.default_rng(seed), so the same seed always
produces the same scene.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.scene.random_spheres import create_random_spheres_scene
    >>> scene, camera = create_random_spheres_scene(seed=7)
"""

from dataclasses import dataclass

import numpy as np

from spheretrace.camera.thin_lens import ThinLensCamera
from spheretrace.materials.dielectric import Dielectric
from spheretrace.materials.lambertian import Lambertian
from spheretrace.materials.metal import Metal
from spheretrace.scene.manager import SceneManager

# Center kept clear of small spheres
CLEARING_CENTER = np.array([4.0, 0.2, 0.0])


@dataclass
class RandomSpheresParams:
    """Parameters of the random spheres scene.

    Attributes:
        grid_half_extent: The grid spans [-n, n) on x and z.
        small_radius: Radius of the grid spheres.
        clearing_radius: Grid spheres closer than this to CLEARING_CENTER
            are skipped.
        diffuse_probability: Fraction of grid spheres that are Lambertian.
        metal_probability: Fraction of grid spheres that are metal. The
            remainder is glass.
        glass_ior: Refractive index of all glass spheres.
    """

    grid_half_extent: int = 11
    small_radius: float = 0.2
    clearing_radius: float = 0.9
    diffuse_probability: float = 0.8
    metal_probability: float = 0.15
    glass_ior: float = 1.5


def create_random_spheres_camera(aspect_ratio: float = 3.0 / 2.0) -> ThinLensCamera:
    """Camera framing the random spheres scene with a shallow depth of field."""
    return ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_dist=10.0,
    )


def populate_random_spheres(
    scene: SceneManager,
    seed: int | None = None,
    params: RandomSpheresParams | None = None,
) -> int:
    """Add the random spheres to an existing scene.

    Args:
        scene: The scene to add spheres to.
        seed: Seed for numpy.random.default_rng. None draws fresh entropy.
        params: Scene parameters. Defaults to RandomSpheresParams().

    Returns:
        The number of spheres added.
    """
    if params is None:
        params = RandomSpheresParams()
    rng = np.random.default_rng(seed)
    start_count = scene.get_sphere_count()

    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, Lambertian(albedo=(0.5, 0.5, 0.5)))

    n = params.grid_half_extent
    for a in range(-n, n):
        for b in range(-n, n):
            choose_mat = rng.random()
            center = np.array(
                [a + 0.9 * rng.random(), params.small_radius, b + 0.9 * rng.random()]
            )
            if np.linalg.norm(center - CLEARING_CENTER) <= params.clearing_radius:
                continue

            if choose_mat < params.diffuse_probability:
                albedo = rng.random(3) * rng.random(3)
                material = Lambertian(albedo=tuple(albedo))
            elif choose_mat < params.diffuse_probability + params.metal_probability:
                albedo = rng.uniform(0.5, 1.0, size=3)
                material = Metal(albedo=tuple(albedo), fuzz=rng.uniform(0.0, 0.5))
            else:
                material = Dielectric(refractive_index=params.glass_ior)

            scene.add_sphere(tuple(center), params.small_radius, material)

    scene.add_sphere((0.0, 1.0, 0.0), 1.0, Dielectric(refractive_index=params.glass_ior))
    scene.add_sphere((-4.0, 1.0, 0.0), 1.0, Lambertian(albedo=(0.4, 0.2, 0.1)))
    scene.add_sphere((4.0, 1.0, 0.0), 1.0, Metal(albedo=(0.7, 0.6, 0.5), fuzz=0.0))

    return scene.get_sphere_count() - start_count


def create_random_spheres_scene(
    seed: int | None = None,
    params: RandomSpheresParams | None = None,
    aspect_ratio: float = 3.0 / 2.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random spheres scene and a matching camera.

    Args:
        seed: Seed for numpy.random.default_rng. None draws fresh entropy.
        params: Scene parameters. Defaults to RandomSpheresParams().
        aspect_ratio: Aspect ratio of the returned camera.

    Returns:
        Tuple of (scene, camera). The scene is not yet built.
    """
    scene = SceneManager()
    populate_random_spheres(scene, seed=seed, params=params)
    return scene, create_random_spheres_camera(aspect_ratio)
