"""Tests for the radiance estimator and render loop.

This module tests the core rendering functionality including:
- Render settings validation
- Tone mapping (averaging, gamma 2, byte scaling)
- Sky background and image orientation
- Material responses along full paths (absorbing, mirror, transparent)
- Depth limit
- Normal shading and BVH/brute-force agreement

Note: Imports are done inside test methods so that Taichi is initialized by
conftest.py before any module declaring ti.field() is imported.
"""

import dataclasses

import numpy as np
import pytest


def _sky_bytes(directions):
    """Expected bytes of the sky for an array of directions, shape (..., 3)."""
    unit = directions / np.linalg.norm(directions, axis=-1, keepdims=True)
    t = 0.5 * (unit[..., 1:2] + 1.0)
    colour = (1.0 - t) * np.array([1.0, 1.0, 1.0]) + t * np.array([0.5, 0.7, 1.0])
    return (256.0 * np.clip(np.sqrt(colour), 0.0, 0.999)).astype(np.int64)


def _axis_camera(size_aspect=1.0):
    from spheretrace.camera.thin_lens import ThinLensCamera

    return ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=size_aspect,
    )


class TestRenderSettings:
    """Tests for RenderSettings validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"width": 1, "height": 10},
            {"width": 10, "height": 1},
            {"width": 4096, "height": 10},
            {"width": 10, "height": 10, "samples_per_pixel": 0},
            {"width": 10, "height": 10, "max_depth": -1},
        ],
    )
    def test_invalid_settings(self, kwargs):
        """Test that out-of-range settings raise ValueError."""
        from spheretrace.core.integrator import RenderSettings

        with pytest.raises(ValueError):
            RenderSettings(**kwargs)

    def test_shading_coerced_to_enum(self):
        """Test that an integer shading value becomes a ShadingMode."""
        from spheretrace.core.integrator import RenderSettings, ShadingMode

        settings = RenderSettings(width=4, height=4, shading=1)
        assert settings.shading is ShadingMode.NORMALS

    def test_row_range_validated(self):
        """Test that render_rows rejects rows outside the image."""
        from spheretrace.core.integrator import RenderSettings, render_rows

        settings = RenderSettings(width=4, height=4)
        with pytest.raises(ValueError):
            render_rows(2, 5, settings)
        with pytest.raises(ValueError):
            render_rows(3, 2, settings)


class TestToneMap:
    """Tests for the gamma-2 tone mapping."""

    def test_black_and_white(self):
        """Test the extremes of the byte range."""
        from spheretrace.core.integrator import tone_map_color

        assert tone_map_color((0.0, 0.0, 0.0), 1) == (0, 0, 0)
        assert tone_map_color((1.0, 1.0, 1.0), 1) == (255, 255, 255)
        # Values above 1 are clamped
        assert tone_map_color((50.0, 2.0, 1.5), 1) == (255, 255, 255)

    def test_average_and_gamma(self):
        """Test averaging over samples followed by a square root."""
        from spheretrace.core.integrator import tone_map_color

        # Average (1, 0.25, 0.0625) -> sqrt (1, 0.5, 0.25)
        assert tone_map_color((4.0, 1.0, 0.25), 4) == (255, 128, 64)

    def test_negative_clamped_to_zero(self):
        """Test that negative sums map to zero."""
        from spheretrace.core.integrator import tone_map_color

        assert tone_map_color((-1.0, 0.0, 0.0), 1) == (0, 0, 0)

    def test_zero_samples_rejected(self):
        """Test that tone mapping requires at least one sample."""
        from spheretrace.core.integrator import tone_map_color

        with pytest.raises(ValueError):
            tone_map_color((1.0, 1.0, 1.0), 0)


class TestBackground:
    """Tests for rendering an empty scene."""

    def test_empty_scene_is_sky(self):
        """Test that every pixel of an empty scene shows the sky gradient."""
        from spheretrace.core.integrator import render
        from spheretrace.scene.manager import SceneManager

        width, height = 9, 7
        pixels = render(
            SceneManager(), _axis_camera(width / height), width, height,
            samples_per_pixel=1, max_depth=5, jitter=False,
        )
        assert pixels.shape == (height, width, 3)
        assert pixels.dtype == np.uint8

        # Row j looks through v = j / (height - 1) of the image plane
        i, j = np.meshgrid(np.arange(width), np.arange(height))
        u = i / (width - 1)
        v = j / (height - 1)
        aspect = width / height
        directions = np.stack(
            [(2.0 * u - 1.0) * aspect, 2.0 * v - 1.0, -np.ones_like(u)], axis=-1
        )
        expected = _sky_bytes(directions)
        assert np.abs(pixels.astype(np.int64) - expected).max() <= 1

    def test_row_zero_is_bottom(self):
        """Test that the first row is the bottom of the image."""
        from spheretrace.core.integrator import render
        from spheretrace.scene.manager import SceneManager

        pixels = render(SceneManager(), _axis_camera(), 8, 8, samples_per_pixel=1, max_depth=1)
        # The horizon (bottom) is whiter than the zenith (top)
        assert pixels[0, :, 0].mean() > pixels[-1, :, 0].mean()


class TestPathEstimator:
    """Tests for full paths through single-sphere scenes."""

    def _center_pixel(self, scene, max_depth=10, samples_per_pixel=1, jitter=False):
        from spheretrace.core.integrator import render

        pixels = render(
            scene, _axis_camera(), 11, 11,
            samples_per_pixel=samples_per_pixel, max_depth=max_depth, jitter=jitter,
        )
        return pixels[5, 5].astype(np.int64)

    def test_black_sphere_absorbs(self):
        """Test that a zero albedo gives black wherever it is hit."""
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, albedo=(0.0, 0.0, 0.0))
        assert self._center_pixel(scene, samples_per_pixel=16, jitter=True).tolist() == [0, 0, 0]

    def test_mirror_reflects_sky_behind_camera(self):
        """Test that a head-on mirror returns the horizontal sky."""
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -1.0), 0.5, albedo=(1.0, 1.0, 1.0), fuzz=0.0)
        expected = _sky_bytes(np.array([0.0, 0.0, 1.0]))
        assert np.abs(self._center_pixel(scene) - expected).max() <= 1

    def test_mirror_attenuates_by_albedo(self):
        """Test that the mirror albedo scales the reflected sky."""
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -1.0), 0.5, albedo=(0.25, 1.0, 1.0), fuzz=0.0)
        pixel = self._center_pixel(scene)
        # Red: sqrt(0.25 * 0.75) = 0.433
        assert abs(pixel[0] - int(256.0 * np.sqrt(0.25 * 0.75))) <= 1

    def test_matched_glass_is_invisible(self):
        """Test that a sphere with refractive index 1 is fully transparent."""
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_dielectric_sphere((0.0, 0.0, -1.0), 0.5, refractive_index=1.0)
        expected = _sky_bytes(np.array([0.0, 0.0, -1.0]))
        assert np.abs(self._center_pixel(scene) - expected).max() <= 1

    def test_depth_zero_is_black(self):
        """Test that no bounces give a black image."""
        from spheretrace.core.integrator import render
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, albedo=(0.5, 0.5, 0.5))
        pixels = render(scene, _axis_camera(), 6, 6, samples_per_pixel=2, max_depth=0)
        assert pixels.max() == 0

    def test_depth_one_sees_only_first_hit(self):
        """Test that one bounce shows the sky but no light off surfaces."""
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -1.0), 0.5, albedo=(1.0, 1.0, 1.0), fuzz=0.0)
        assert self._center_pixel(scene, max_depth=1).tolist() == [0, 0, 0]

    def test_output_finite_and_in_range(self):
        """Test a small random-spheres render for shape and value range."""
        from spheretrace.core.integrator import render
        from spheretrace.scene.random_spheres import create_random_spheres_scene

        scene, camera = create_random_spheres_scene(seed=1, aspect_ratio=1.5)
        pixels = render(scene, camera, 24, 16, samples_per_pixel=2, max_depth=8)
        assert pixels.shape == (16, 24, 3)
        assert pixels.dtype == np.uint8
        # Some light reaches the camera
        assert pixels.max() > 0


class TestNormalShading:
    """Tests for the deterministic normal shading mode."""

    def test_center_pixel_normal(self):
        """Test the color of the normal facing the camera."""
        from spheretrace.core.integrator import ShadingMode, render
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, albedo=(0.5, 0.5, 0.5))
        pixels = render(
            scene, _axis_camera(), 11, 11, samples_per_pixel=1, max_depth=1,
            jitter=False, shading=ShadingMode.NORMALS,
        )
        # Normal (0, 0, 1) -> (0.5, 0.5, 1.0) -> gamma -> (181, 181, 255)
        assert pixels[5, 5].tolist() == [181, 181, 255]
        # Corners miss the sphere and show the sky
        expected = _sky_bytes(np.array([-1.0, -1.0, -1.0]))
        assert np.abs(pixels[0, 0].astype(np.int64) - expected).max() <= 1

    def test_bvh_matches_brute_force(self):
        """Test that BVH traversal renders the same image as brute force."""
        from spheretrace.core.integrator import ShadingMode, render
        from spheretrace.scene.random_spheres import create_random_spheres_scene

        scene, camera = create_random_spheres_scene(seed=7, aspect_ratio=1.5)
        # Pinhole, so both renders trace identical rays
        camera = dataclasses.replace(camera, aperture=0.0)
        options = dict(samples_per_pixel=1, max_depth=1, jitter=False, shading=ShadingMode.NORMALS)
        with_bvh = render(scene, camera, 60, 40, use_bvh=True, **options)
        without_bvh = render(scene, camera, 60, 40, use_bvh=False, **options)

        np.testing.assert_array_equal(with_bvh, without_bvh)
