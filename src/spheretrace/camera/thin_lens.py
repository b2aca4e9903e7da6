"""Thin-lens camera model with depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The image plane sits at focus_dist along -w. Rays start at a random point on
a lens disk of radius aperture / 2 around the camera origin and pass through
the point (s, t) of the image plane, so only geometry at the focus distance
is sharp. An aperture of 0 degenerates to a pinhole camera.

Generated ray directions are NOT normalized.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.camera.thin_lens import ThinLensCamera, setup_camera, get_ray
    >>>
    >>> camera = ThinLensCamera(
    ...     lookfrom=(13.0, 2.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=3.0 / 2.0,
    ...     aperture=0.1,
    ...     focus_dist=10.0,
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray = get_ray(0.5, 0.5)  # Ray through image center
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from spheretrace.core.ray import Ray, make_ray
from spheretrace.core.vector import random_in_unit_disk

# Below this length the cross product of vup and w counts as degenerate
DEGENERATE_EPSILON = 1e-12

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (depth of field) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_dist: Distance from the camera to the plane in perfect focus.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_dist: float = 1.0

    def to_dict(self) -> dict:
        """Export as a JSON-ready dictionary."""
        return {
            "lookfrom": list(self.lookfrom),
            "lookat": list(self.lookat),
            "vup": list(self.vup),
            "vfov": self.vfov,
            "aspect_ratio": self.aspect_ratio,
            "aperture": self.aperture,
            "focus_dist": self.focus_dist,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ThinLensCamera":
        """Create a camera from a dictionary produced by to_dict()."""
        return cls(
            lookfrom=tuple(data["lookfrom"]),
            lookat=tuple(data["lookat"]),
            vup=tuple(data.get("vup", (0.0, 1.0, 0.0))),
            vfov=float(data["vfov"]),
            aspect_ratio=float(data["aspect_ratio"]),
            aperture=float(data.get("aperture", 0.0)),
            focus_dist=float(data.get("focus_dist", 1.0)),
        )


@dataclass(frozen=True)
class CameraBasis:
    """Derived camera geometry, as uploaded to the device.

    Attributes:
        origin: Camera position.
        u: Right direction (unit).
        v: Up direction (unit).
        w: Backward direction (unit).
        horizontal: Full image-plane width vector.
        vertical: Full image-plane height vector.
        lower_left: Lower-left corner of the image plane.
        lens_radius: Radius of the lens disk.
    """

    origin: np.ndarray
    u: np.ndarray
    v: np.ndarray
    w: np.ndarray
    horizontal: np.ndarray
    vertical: np.ndarray
    lower_left: np.ndarray
    lens_radius: float


def compute_camera_basis(camera: ThinLensCamera) -> CameraBasis:
    """Compute the orthonormal basis and image plane of a camera.

    Args:
        camera: Camera configuration.

    Returns:
        The derived CameraBasis.

    Raises:
        ValueError: If the configuration is degenerate.
    """
    if not 0.0 < camera.vfov < 180.0:
        raise ValueError(f"vfov = {camera.vfov} must be in (0, 180) degrees")
    if camera.aspect_ratio <= 0.0:
        raise ValueError(f"aspect_ratio = {camera.aspect_ratio} must be positive")
    if camera.focus_dist <= 0.0:
        raise ValueError(f"focus_dist = {camera.focus_dist} must be positive")
    if camera.aperture < 0.0:
        raise ValueError(f"aperture = {camera.aperture} must not be negative")

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = lookfrom - lookat
    w_length = np.linalg.norm(w)
    if w_length < DEGENERATE_EPSILON:
        raise ValueError("lookfrom and lookat must be different points")
    w = w / w_length

    u = np.cross(vup, w)
    u_length = np.linalg.norm(u)
    if u_length < DEGENERATE_EPSILON:
        raise ValueError(f"vup = {camera.vup} must not be parallel to the view direction")
    u = u / u_length

    v = np.cross(w, u)

    horizontal = camera.focus_dist * viewport_width * u
    vertical = camera.focus_dist * viewport_height * v
    lower_left = lookfrom - horizontal / 2.0 - vertical / 2.0 - camera.focus_dist * w

    return CameraBasis(
        origin=lookfrom,
        u=u,
        v=v,
        w=w,
        horizontal=horizontal,
        vertical=vertical,
        lower_left=lower_left,
        lens_radius=camera.aperture / 2.0,
    )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Image plane at the focus distance
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: ThinLensCamera) -> CameraBasis:
    """Compute the camera geometry and upload it for ray generation.

    Must be called before rendering, from Python (not from within a kernel).

    Args:
        camera: Camera configuration.

    Returns:
        The uploaded CameraBasis.

    Raises:
        ValueError: If the configuration is degenerate.
    """
    basis = compute_camera_basis(camera)

    _camera_origin[None] = basis.origin.tolist()
    _camera_u[None] = basis.u.tolist()
    _camera_v[None] = basis.v.tolist()
    _camera_w[None] = basis.w.tolist()
    _viewport_horizontal[None] = basis.horizontal.tolist()
    _viewport_vertical[None] = basis.vertical.tolist()
    _lower_left_corner[None] = basis.lower_left.tolist()
    _lens_radius[None] = basis.lens_radius

    return basis


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32) -> Ray:
    """Generate a ray through normalized image coordinates (s, t).

    - s = 0: left edge, s = 1: right edge
    - t = 0: bottom edge, t = 1: top edge

    Args:
        s: Horizontal coordinate (left to right).
        t: Vertical coordinate (bottom to top).

    Returns:
        A Ray starting on the lens disk and passing through the image-plane
        point (s, t). The direction is not normalized.
    """
    rd = _lens_radius[None] * random_in_unit_disk()
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None] + offset
    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]

    return make_ray(origin, target - origin)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, object]:
    """Get the uploaded camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left
        (as float tuples) and lens_radius.
    """

    def _as_tuple(f) -> tuple[float, float, float]:
        vec = f[None]
        return (float(vec[0]), float(vec[1]), float(vec[2]))

    return {
        "origin": _as_tuple(_camera_origin),
        "u": _as_tuple(_camera_u),
        "v": _as_tuple(_camera_v),
        "w": _as_tuple(_camera_w),
        "horizontal": _as_tuple(_viewport_horizontal),
        "vertical": _as_tuple(_viewport_vertical),
        "lower_left": _as_tuple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
