"""Scene manager coordinating spheres, materials and the BVH.

The SceneManager is the host-side scene-construction interface. It keeps
the list of spheres (each with its own material value), builds the BVH over
them and uploads spheres, materials and the BVH arena to the Taichi fields
queried by the renderer.

build() is the barrier between scene construction and rendering: after it
returns, the device-side scene matches the host-side list. Adding spheres
afterwards marks the scene dirty, and the next build() rebuilds the BVH.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> scene.add_lambertian_sphere((0, -100.5, -1), 100.0, albedo=(0.8, 0.8, 0.0))
    0
    >>> scene.add_dielectric_sphere((-1, 0, -1), 0.5, refractive_index=1.5)
    1
    >>> scene.add_metal_sphere((1, 0, -1), 0.5, albedo=(0.8, 0.6, 0.2), fuzz=0.0)
    2
    >>> bvh = scene.build()
"""

from dataclasses import dataclass, field
from typing import Any, Union

import numpy as np

from spheretrace.geometry.bvh import Bvh
from spheretrace.materials.dielectric import Dielectric
from spheretrace.materials.lambertian import Lambertian
from spheretrace.materials.metal import Metal
from spheretrace.scene.intersection import (
    MAX_SPHERES,
    clear_scene,
    get_sphere_count,
    upload_bvh,
    upload_spheres,
)

# Any supported material variant
MaterialSpec = Union[Lambertian, Metal, Dielectric]


def material_from_dict(data: dict[str, Any]) -> MaterialSpec:
    """Create a material from its dictionary form.

    Args:
        data: A dictionary with a "type" key ("lambertian", "metal" or
            "dielectric") and the variant's parameters.

    Returns:
        The material value.

    Raises:
        ValueError: If the type is unknown or a parameter is invalid.
    """
    mat_type = str(data.get("type", "")).lower()
    if mat_type == "lambertian":
        return Lambertian(albedo=tuple(data.get("albedo", (0.5, 0.5, 0.5))))
    if mat_type == "metal":
        return Metal(
            albedo=tuple(data.get("albedo", (0.8, 0.8, 0.8))),
            fuzz=float(data.get("fuzz", 0.0)),
        )
    if mat_type == "dielectric":
        ior = data.get("refractive_index", data.get("ior", 1.5))
        return Dielectric(refractive_index=float(ior))
    raise ValueError(f"Unknown material type: {mat_type!r}")


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material: The material value of the sphere.
        node_index: The BVH leaf holding the sphere, or -1 before build().
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material: MaterialSpec
    node_index: int = -1


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        spheres: List of sphere configurations, each with center, radius and
            a material dictionary.
    """

    spheres: list[dict[str, Any]] = field(default_factory=list)


class SceneManager:
    """Host-side scene: a list of spheres, each carrying its material.

    Attributes:
        spheres: List of SphereInfo for all spheres in the scene.
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.spheres: list[SphereInfo] = []
        self._bvh: Bvh | None = None
        self._dirty = True
        self.clear()

    def clear(self) -> None:
        """Remove all spheres and reset the device-side scene."""
        clear_scene()
        self.spheres.clear()
        self._bvh = None
        self._dirty = True

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material: MaterialSpec,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (should be positive).
            material: The material of the sphere.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If the material is not a supported variant.
        """
        if not isinstance(material, (Lambertian, Metal, Dielectric)):
            raise ValueError(f"Unsupported material: {material!r}")

        sphere_index = len(self.spheres)
        if sphere_index >= MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

        info = SphereInfo(
            sphere_index=sphere_index,
            center=(float(center[0]), float(center[1]), float(center[2])),
            radius=float(radius),
            material=material,
        )
        self.spheres.append(info)
        self._dirty = True

        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> int:
        """Add a sphere with a Lambertian material.

        Raises:
            ValueError: If any albedo component is outside [0, 1].
        """
        return self.add_sphere(center, radius, Lambertian(albedo=albedo))

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a sphere with a metal material.

        Raises:
            ValueError: If any albedo component is outside [0, 1] or fuzz
                is negative.
        """
        return self.add_sphere(center, radius, Metal(albedo=albedo, fuzz=fuzz))

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        refractive_index: float = 1.5,
    ) -> int:
        """Add a sphere with a dielectric material.

        Raises:
            ValueError: If the refractive index is not positive.
        """
        return self.add_sphere(center, radius, Dielectric(refractive_index=refractive_index))

    # =========================================================================
    # Build and Upload
    # =========================================================================

    @property
    def is_built(self) -> bool:
        """True if the BVH matches the current sphere list."""
        return not self._dirty

    @property
    def bvh(self) -> Bvh | None:
        """The hierarchy from the last build(), or None."""
        return self._bvh

    def build(self) -> Bvh:
        """Build the BVH if needed and upload the scene for rendering.

        Each sphere's node_index is set to the BVH leaf that holds it.

        Returns:
            The hierarchy over the current spheres.
        """
        if self._dirty or self._bvh is None:
            centers, radii = self._geometry_arrays()
            self._bvh = Bvh.from_spheres(centers, radii)
            for info, leaf in zip(self.spheres, self._bvh.leaf_of):
                info.node_index = int(leaf)
            self._dirty = False

        self._upload()
        return self._bvh

    def _geometry_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        n = len(self.spheres)
        centers = np.array([s.center for s in self.spheres], dtype=np.float64).reshape(n, 3)
        radii = np.array([s.radius for s in self.spheres], dtype=np.float64)
        return centers, radii

    def _upload(self) -> None:
        centers, radii = self._geometry_arrays()
        params = [s.material.params() for s in self.spheres]
        n = len(params)
        upload_spheres(
            centers,
            radii,
            np.array([int(p.kind) for p in params], dtype=np.int32),
            np.array([p.albedo for p in params], dtype=np.float32).reshape(n, 3),
            np.array([p.fuzz for p in params], dtype=np.float32),
            np.array([p.ior for p in params], dtype=np.float32),
        )
        upload_bvh(self._bvh)

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return len(self.spheres)

    def get_uploaded_sphere_count(self) -> int:
        """Get the number of spheres currently uploaded to the device."""
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()
        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material": sphere.material.to_dict(),
                }
            )
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()
        for sphere_config in config.spheres:
            center_list = sphere_config.get("center", [0.0, 0.0, 0.0])
            center = (center_list[0], center_list[1], center_list[2])
            radius = sphere_config.get("radius", 1.0)
            material = material_from_dict(sphere_config.get("material", {}))
            self.add_sphere(center, radius, material)

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        return {"spheres": self.to_config().spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary (from JSON deserialization).

        Raises:
            ValueError: If the data contains invalid entries.
        """
        self.from_config(SceneConfig(spheres=list(data.get("spheres", []))))
