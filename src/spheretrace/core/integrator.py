"""Radiance estimation, the parallel render loop and tone mapping.

The radiance estimator follows a camera ray through the scene: at every hit
the material scatters the ray and its attenuation is multiplied into a
running throughput; when the ray escapes, the throughput is multiplied by the
sky gradient. A ray that is absorbed, or still bouncing after max_depth
bounces, contributes black.

The render kernel is parallelised over pixels (Taichi owns a private random
state per thread). Each pixel sums samples_per_pixel estimates of jittered
camera rays, discards non-finite samples, and tone-maps the average with
gamma 2 into integer bytes.

Pixel (i, j) maps to image-plane coordinates

    u = (i + xi) / (width - 1)
    v = (j + xi) / (height - 1)

so row j = 0 is the bottom scanline of the image.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.integrator import render
    >>> from spheretrace.scene.random_spheres import create_random_spheres_scene
    >>>
    >>> scene, camera = create_random_spheres_scene(seed=42)
    >>> pixels = render(scene, camera, 300, 200, samples_per_pixel=10, max_depth=50)
    >>> pixels.shape, pixels.dtype
    ((200, 300, 3), dtype('uint8'))
"""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

from spheretrace.camera.thin_lens import ThinLensCamera, get_ray, setup_camera
from spheretrace.core.ray import Ray
from spheretrace.core.vector import unit_vector, vec3
from spheretrace.geometry.sphere import HitRecord, make_miss_record
from spheretrace.materials.scatter import scatter
from spheretrace.scene.intersection import intersect_scene, intersect_scene_linear
from spheretrace.scene.manager import SceneManager

# =============================================================================
# Rendering Constants
# =============================================================================

# Ray interval for scene queries. T_MIN avoids self-intersection ("acne").
T_MIN = 0.001
T_MAX = tm.inf

# Sky gradient endpoints (horizon and zenith)
SKY_HORIZON = vec3(1.0, 1.0, 1.0)
SKY_ZENITH = vec3(0.5, 0.7, 1.0)

# Largest channel value before byte scaling, so 256 * value stays below 256
MAX_CHANNEL = 0.999

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048


class ShadingMode(IntEnum):
    """Radiance estimator used by the render loop.

    PATH is the physically based estimator. NORMALS maps the surface normal
    of the first hit to a color, which is deterministic and useful for
    checking geometry and camera setup.
    """

    PATH = 0
    NORMALS = 1


@dataclass
class RenderSettings:
    """Parameters of one render.

    Attributes:
        width: Image width in pixels, in [2, MAX_IMAGE_WIDTH].
        height: Image height in pixels, in [2, MAX_IMAGE_HEIGHT].
        samples_per_pixel: Estimates averaged per pixel (>= 1).
        max_depth: Maximum number of bounces per path (>= 0).
        jitter: Randomize the sample position inside each pixel.
        shading: The radiance estimator.
        use_bvh: Use BVH traversal instead of testing every sphere.
    """

    width: int
    height: int
    samples_per_pixel: int = 100
    max_depth: int = 50
    jitter: bool = True
    shading: ShadingMode = ShadingMode.PATH
    use_bvh: bool = True

    def __post_init__(self) -> None:
        if not 2 <= self.width <= MAX_IMAGE_WIDTH:
            raise ValueError(f"width = {self.width} must be in [2, {MAX_IMAGE_WIDTH}]")
        if not 2 <= self.height <= MAX_IMAGE_HEIGHT:
            raise ValueError(f"height = {self.height} must be in [2, {MAX_IMAGE_HEIGHT}]")
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel = {self.samples_per_pixel} must be at least 1")
        if self.max_depth < 0:
            raise ValueError(f"max_depth = {self.max_depth} must not be negative")
        self.shading = ShadingMode(self.shading)


# =============================================================================
# Render Target (Byte Buffer)
# =============================================================================

# Tone-mapped bytes, indexed [i, j] with j = 0 the bottom row
_pixel_buffer = ti.Vector.field(3, dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))


def clear_pixels() -> None:
    """Reset the byte buffer to black."""
    _pixel_buffer.fill(0)


# =============================================================================
# Radiance Estimation
# =============================================================================


@ti.func
def sky_colour(direction: vec3) -> vec3:
    """Background gradient: white at the horizon, light blue overhead.

    Args:
        direction: Ray direction (any non-zero length).

    Returns:
        (1 - t) * white + t * (0.5, 0.7, 1.0) with t = 0.5 * (unit.y + 1).
    """
    unit_direction = unit_vector(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - t) * SKY_HORIZON + t * SKY_ZENITH


@ti.func
def nearest_hit(ray: Ray, use_bvh: ti.i32) -> HitRecord:
    """Query the nearest scene hit in [T_MIN, T_MAX]."""
    rec = make_miss_record()
    if use_bvh == 1:
        rec = intersect_scene(ray, T_MIN, T_MAX)
    else:
        rec = intersect_scene_linear(ray, T_MIN, T_MAX)
    return rec


@ti.func
def ray_colour(ray: Ray, max_depth: ti.i32, use_bvh: ti.i32) -> vec3:
    """Estimate the radiance arriving along a ray.

    Args:
        ray: The camera ray.
        max_depth: Maximum number of scene queries along the path.
        use_bvh: 1 to use BVH traversal, 0 for brute force.

    Returns:
        The radiance estimate (RGB, not clamped).
    """
    colour = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    current = ray

    # Taichi doesn't support break in ti.func loops
    active = 1

    for _ in range(max_depth):
        if active == 1:
            rec = nearest_hit(current, use_bvh)

            if rec.hit == 0:
                colour = throughput * sky_colour(current.direction)
                active = 0
            else:
                scattered, attenuation, did_scatter = scatter(current, rec)
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    current = scattered

    return colour


@ti.func
def shade_normal(ray: Ray, use_bvh: ti.i32) -> vec3:
    """Map the normal at the first hit to a color, or return the sky.

    Returns:
        0.5 * (normal + 1) on a hit, sky_colour(direction) on a miss.
    """
    colour = sky_colour(ray.direction)
    rec = nearest_hit(ray, use_bvh)
    if rec.hit == 1:
        colour = 0.5 * (rec.normal + vec3(1.0, 1.0, 1.0))
    return colour


@ti.func
def tone_map(colour_sum: vec3, samples: ti.i32):
    """Average a sample sum, apply gamma 2 and scale to bytes.

    Args:
        colour_sum: Sum of the radiance estimates.
        samples: Number of summed estimates.

    Returns:
        Integer RGB in [0, 255]: int(256 * clamp(sqrt(sum / samples), 0, 0.999)).
    """
    scale = 1.0 / ti.cast(samples, ti.f32)
    colour = ti.sqrt(ti.max(colour_sum * scale, 0.0))
    colour = tm.clamp(colour, 0.0, MAX_CHANNEL)
    return ti.cast(256.0 * colour, ti.i32)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(
    row_start: ti.i32,
    row_end: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    jitter: ti.i32,
    shading: ti.i32,
    use_bvh: ti.i32,
):
    """Render rows [row_start, row_end) into the byte buffer."""
    for i, j in ti.ndrange(width, (row_start, row_end)):
        colour_sum = vec3(0.0, 0.0, 0.0)

        for _ in range(samples_per_pixel):
            du = 0.0
            dv = 0.0
            if jitter == 1:
                du = ti.random(ti.f32)
                dv = ti.random(ti.f32)
            u = (ti.cast(i, ti.f32) + du) / ti.cast(width - 1, ti.f32)
            v = (ti.cast(j, ti.f32) + dv) / ti.cast(height - 1, ti.f32)

            ray = get_ray(u, v)
            sample = vec3(0.0, 0.0, 0.0)
            if shading == int(ShadingMode.NORMALS):
                sample = shade_normal(ray, use_bvh)
            else:
                sample = ray_colour(ray, max_depth, use_bvh)

            # Check for NaN/Inf and replace with zero
            for c in ti.static(range(3)):
                if tm.isnan(sample[c]) or tm.isinf(sample[c]):
                    sample[c] = 0.0

            colour_sum += sample

        _pixel_buffer[i, j] = tone_map(colour_sum, samples_per_pixel)


@ti.kernel
def _tone_map_kernel(r: ti.f32, g: ti.f32, b: ti.f32, samples: ti.i32) -> tm.ivec3:
    return tone_map(vec3(r, g, b), samples)


# =============================================================================
# Public Rendering API
# =============================================================================


def render_rows(row_start: int, row_end: int, settings: RenderSettings) -> None:
    """Render a band of rows into the byte buffer.

    The scene and camera must already be uploaded.

    Args:
        row_start: First row (0 = bottom), inclusive.
        row_end: Last row, exclusive.
        settings: Render parameters.

    Raises:
        ValueError: If the row range is outside the image.
    """
    if not 0 <= row_start <= row_end <= settings.height:
        raise ValueError(
            f"Row range [{row_start}, {row_end}) is outside the image height {settings.height}"
        )
    if row_start == row_end:
        return

    _render_rows(
        row_start,
        row_end,
        settings.width,
        settings.height,
        settings.samples_per_pixel,
        settings.max_depth,
        int(settings.jitter),
        int(settings.shading),
        int(settings.use_bvh),
    )


def get_pixels(width: int, height: int) -> np.ndarray:
    """Read the byte buffer back.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Array of shape (height, width, 3) and dtype uint8. Row 0 is the
        bottom scanline; see spheretrace.preview.export.orient_for_display.
    """
    full_image = _pixel_buffer.to_numpy()
    image = full_image[:width, :height, :]

    # Transpose from (width, height, 3) to (height, width, 3)
    image = np.transpose(image, (1, 0, 2))
    return np.ascontiguousarray(image).astype(np.uint8)


def tone_map_color(colour_sum: tuple[float, float, float], samples: int) -> tuple[int, int, int]:
    """Host-side access to the tone mapping applied by the render kernel.

    Args:
        colour_sum: Sum of radiance estimates as (R, G, B).
        samples: Number of summed estimates (>= 1).

    Returns:
        The byte triple as Python ints.
    """
    if samples < 1:
        raise ValueError(f"samples = {samples} must be at least 1")
    result = _tone_map_kernel(
        float(colour_sum[0]), float(colour_sum[1]), float(colour_sum[2]), samples
    )
    return (int(result[0]), int(result[1]), int(result[2]))


def prepare_render(scene: SceneManager, camera: ThinLensCamera) -> None:
    """Build and upload the scene and upload the camera."""
    scene.build()
    setup_camera(camera)


def render(
    scene: SceneManager,
    camera: ThinLensCamera,
    image_width: int,
    image_height: int,
    samples_per_pixel: int,
    max_depth: int,
    **options,
) -> np.ndarray:
    """Render a scene to bytes.

    Args:
        scene: The scene. It is built (BVH and upload) before rendering.
        camera: The camera configuration.
        image_width: Image width in pixels (>= 2).
        image_height: Image height in pixels (>= 2).
        samples_per_pixel: Estimates averaged per pixel.
        max_depth: Maximum number of bounces per path.
        **options: Remaining RenderSettings fields (jitter, shading, use_bvh).

    Returns:
        Array of shape (image_height, image_width, 3) and dtype uint8, with
        row 0 the bottom scanline.

    Raises:
        ValueError: If a parameter or the camera configuration is invalid.
    """
    settings = RenderSettings(
        width=image_width,
        height=image_height,
        samples_per_pixel=samples_per_pixel,
        max_depth=max_depth,
        **options,
    )
    prepare_render(scene, camera)
    render_rows(0, settings.height, settings)
    return get_pixels(settings.width, settings.height)
