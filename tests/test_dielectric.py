"""Unit tests for the Dielectric material module.

Tests cover:
- Refraction ratio per side of the surface
- Matched index passes light straight through
- Total internal reflection at grazing angles from inside
- Fresnel reflection probability at grazing incidence
- Attenuation is white
- Scatter dispatch on the material tag
- Refractive index validation
"""

import numpy as np
import pytest
import taichi as ti


class TestRefractionRatio:
    """Tests for refraction_ratio."""

    def test_entering_and_leaving(self):
        """Test 1/ior when entering and ior when leaving."""
        from spheretrace.materials.dielectric import refraction_ratio

        entering = ti.field(dtype=ti.f32, shape=())
        leaving = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            entering[None] = refraction_ratio(1.5, 1)
            leaving[None] = refraction_ratio(1.5, 0)

        test_kernel()
        assert abs(entering[None] - 1.0 / 1.5) < 1e-6
        assert abs(leaving[None] - 1.5) < 1e-6


class TestDielectricScatter:
    """Tests for scatter_dielectric."""

    def test_matched_index_passes_straight_through(self):
        """Test that an index of 1 at normal incidence refracts without bending."""
        from spheretrace.materials.dielectric import scatter_dielectric

        n = 500
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                incident = ti.math.vec3(0.0, 0.0, -2.0)
                normal = ti.math.vec3(0.0, 0.0, 1.0)
                d, _, _ = scatter_dielectric(1.0, incident, normal, 1)
                directions[i] = d

        test_kernel()
        # Reflectance is 0 for a matched index, so every sample refracts
        np.testing.assert_allclose(
            directions.to_numpy(), np.tile([0.0, 0.0, -1.0], (n, 1)), atol=1e-5
        )

    def test_total_internal_reflection(self):
        """Test that a grazing ray inside glass always reflects."""
        from spheretrace.materials.dielectric import scatter_dielectric

        n = 500
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=n)
        did_scatter = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                # Leaving glass at about 63 degrees, past the critical angle of 41.8
                incident = ti.math.vec3(2.0, -1.0, 0.0)
                normal = ti.math.vec3(0.0, 1.0, 0.0)
                d, att, s = scatter_dielectric(1.5, incident, normal, 0)
                directions[i] = d
                attenuation[i] = att
                did_scatter[i] = s

        test_kernel()
        expected = np.array([2.0, 1.0, 0.0]) / np.sqrt(5.0)
        np.testing.assert_allclose(directions.to_numpy(), np.tile(expected, (n, 1)), atol=1e-5)
        np.testing.assert_allclose(attenuation.to_numpy(), 1.0)
        assert (did_scatter.to_numpy() == 1).all()

    def test_fresnel_mixture(self):
        """Test that both reflection and refraction occur at grazing entry."""
        from spheretrace.materials.dielectric import scatter_dielectric

        n = 4000
        reflected = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                # Entering glass at about 80 degrees from the normal
                incident = ti.math.vec3(1.0, -0.18, 0.0)
                normal = ti.math.vec3(0.0, 1.0, 0.0)
                d, _, _ = scatter_dielectric(1.5, incident, normal, 1)
                if d.y > 0.0:
                    reflected[i] = 1

        test_kernel()
        fraction = reflected.to_numpy().mean()
        # Schlick reflectance at this angle is roughly 0.4
        assert 0.2 < fraction < 0.6


class TestScatterDispatch:
    """Tests for the material tag dispatch."""

    def _scatter(self, kind, normal_dir):
        from spheretrace.core.ray import make_ray
        from spheretrace.core.vector import vec3
        from spheretrace.geometry.sphere import HitRecord
        from spheretrace.materials.material import Material
        from spheretrace.materials.scatter import scatter

        origin = ti.Vector.field(3, dtype=ti.f32, shape=())
        direction = ti.Vector.field(3, dtype=ti.f32, shape=())
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())
        did_scatter = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(k: ti.i32, nz: ti.f32):
            ray = make_ray(vec3(0.0, 0.0, 1.0), vec3(0.0, 0.0, -1.0))
            rec = HitRecord(
                hit=1,
                t=1.0,
                point=vec3(0.0, 0.0, 0.0),
                normal=vec3(0.0, 0.0, nz),
                front_face=1,
                material=Material(kind=k, albedo=vec3(0.2, 0.4, 0.6), fuzz=0.0, ior=1.0),
            )
            scattered, att, s = scatter(ray, rec)
            origin[None] = scattered.origin
            direction[None] = scattered.direction
            attenuation[None] = att
            did_scatter[None] = s

        test_kernel(kind, normal_dir)
        return origin[None], direction[None], attenuation[None], did_scatter[None]

    def test_metal_dispatch(self):
        """Test that the metal tag mirrors from the hit point."""
        from spheretrace.materials.material import MaterialType

        origin, direction, attenuation, did_scatter = self._scatter(int(MaterialType.METAL), 1.0)
        assert did_scatter == 1
        assert abs(origin[0]) < 1e-6 and abs(origin[2]) < 1e-6
        assert abs(direction[2] - 1.0) < 1e-5
        assert abs(attenuation[1] - 0.4) < 1e-6

    def test_dielectric_dispatch(self):
        """Test that the dielectric tag has white attenuation."""
        from spheretrace.materials.material import MaterialType

        _, direction, attenuation, did_scatter = self._scatter(int(MaterialType.DIELECTRIC), 1.0)
        assert did_scatter == 1
        assert abs(direction[2] + 1.0) < 1e-5
        assert all(abs(attenuation[i] - 1.0) < 1e-6 for i in range(3))

    def test_lambertian_dispatch(self):
        """Test that the lambertian tag scatters into the normal hemisphere."""
        from spheretrace.materials.material import MaterialType

        _, direction, attenuation, did_scatter = self._scatter(int(MaterialType.LAMBERTIAN), 1.0)
        assert did_scatter == 1
        assert direction[2] >= -1e-5
        assert abs(attenuation[2] - 0.6) < 1e-6

    def test_unknown_tag_absorbs(self):
        """Test that an unknown tag produces no scattered ray."""
        _, _, attenuation, did_scatter = self._scatter(7, 1.0)
        assert did_scatter == 0
        assert all(abs(attenuation[i]) < 1e-6 for i in range(3))


class TestDielectricMaterial:
    """Tests for the host-side Dielectric dataclass."""

    @pytest.mark.parametrize("ior", [0.0, -1.5])
    def test_non_positive_index_rejected(self, ior):
        """Test that a refractive index <= 0 raises ValueError."""
        from spheretrace.materials.dielectric import Dielectric

        with pytest.raises(ValueError):
            Dielectric(refractive_index=ior)

    def test_params_and_dict(self):
        """Test upload parameters and JSON export."""
        from spheretrace.materials.dielectric import Dielectric
        from spheretrace.materials.material import MaterialType

        glass = Dielectric()
        params = glass.params()
        assert params.kind == MaterialType.DIELECTRIC
        assert params.ior == 1.5
        assert params.albedo == (1.0, 1.0, 1.0)
        assert glass.to_dict() == {"type": "dielectric", "refractive_index": 1.5}
