"""Unit tests for the Lambertian material module.

Tests cover:
- Scattered directions stay in the hemisphere of the normal
- Cosine-weighted distribution (mean cos theta = 2/3)
- Attenuation equals albedo
- Degenerate scatter direction falls back to the normal
- Albedo validation
"""

import pytest
import taichi as ti


class TestLambertianScatter:
    """Tests for scatter_lambertian."""

    def test_directions_in_hemisphere(self):
        """Test that every scattered direction points away from the surface."""
        from spheretrace.materials.lambertian import scatter_lambertian

        n = 5000
        cos_values = ti.field(dtype=ti.f32, shape=n)
        lengths = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                normal = ti.math.vec3(0.0, 1.0, 0.0)
                direction, _, _ = scatter_lambertian(ti.math.vec3(0.5, 0.5, 0.5), normal)
                lengths[i] = direction.norm()
                cos_values[i] = direction.normalized().dot(normal)

        test_kernel()
        cos_np = cos_values.to_numpy()
        assert cos_np.min() >= -1e-5
        assert lengths.to_numpy().min() > 0.0

    def test_cosine_weighted_mean(self):
        """Test that the mean cosine matches a cosine-weighted hemisphere."""
        from spheretrace.materials.lambertian import scatter_lambertian

        n = 20000
        cos_values = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                normal = ti.math.vec3(0.0, 0.0, 1.0)
                direction, _, _ = scatter_lambertian(ti.math.vec3(1.0, 1.0, 1.0), normal)
                cos_values[i] = direction.normalized().z

        test_kernel()
        # E[cos theta] for a cosine-weighted hemisphere is 2/3
        assert abs(cos_values.to_numpy().mean() - 2.0 / 3.0) < 0.02

    def test_attenuation_is_albedo(self):
        """Test that attenuation equals albedo and a ray is always produced."""
        from spheretrace.materials.lambertian import scatter_lambertian

        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())
        did_scatter = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            _, att, scattered = scatter_lambertian(
                ti.math.vec3(0.8, 0.3, 0.1), ti.math.vec3(1.0, 0.0, 0.0)
            )
            attenuation[None] = att
            did_scatter[None] = scattered

        test_kernel()
        a = attenuation[None]
        assert abs(a[0] - 0.8) < 1e-6
        assert abs(a[1] - 0.3) < 1e-6
        assert abs(a[2] - 0.1) < 1e-6
        assert did_scatter[None] == 1

    def test_degenerate_direction_falls_back_to_normal(self):
        """Test that an offset cancelling the normal yields the normal."""
        from spheretrace.materials.lambertian import diffuse_direction

        cancelled = ti.Vector.field(3, dtype=ti.f32, shape=())
        regular = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            normal = ti.math.vec3(0.0, 1.0, 0.0)
            cancelled[None] = diffuse_direction(normal, ti.math.vec3(0.0, -1.0, 0.0))
            regular[None] = diffuse_direction(normal, ti.math.vec3(1.0, 0.0, 0.0))

        test_kernel()
        c = cancelled[None]
        assert abs(c[0]) < 1e-6 and abs(c[1] - 1.0) < 1e-6 and abs(c[2]) < 1e-6
        r = regular[None]
        assert abs(r[0] - 1.0) < 1e-6 and abs(r[1] - 1.0) < 1e-6 and abs(r[2]) < 1e-6


class TestLambertianMaterial:
    """Tests for the host-side Lambertian dataclass."""

    def test_params(self):
        """Test flattening to upload parameters."""
        from spheretrace.materials.lambertian import Lambertian
        from spheretrace.materials.material import MaterialType

        params = Lambertian(albedo=(0.1, 0.2, 0.3)).params()
        assert params.kind == MaterialType.LAMBERTIAN
        assert params.albedo == (0.1, 0.2, 0.3)

    def test_to_dict(self):
        """Test JSON export."""
        from spheretrace.materials.lambertian import Lambertian

        assert Lambertian(albedo=(1, 0, 0)).to_dict() == {
            "type": "lambertian",
            "albedo": [1.0, 0.0, 0.0],
        }

    @pytest.mark.parametrize(
        "albedo", [(1.5, 0.5, 0.5), (-0.1, 0.5, 0.5), (0.5, 0.5)]
    )
    def test_invalid_albedo(self, albedo):
        """Test that albedo outside [0, 1] or of wrong length is rejected."""
        from spheretrace.materials.lambertian import Lambertian

        with pytest.raises(ValueError):
            Lambertian(albedo=albedo)
