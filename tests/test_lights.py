"""Unit tests for point and area lights.

Tests cover:
- AreaLight cell geometry and validation
- Registry behavior and intensity validation
- Kernel-side sample enumeration, with and without jitter
- Shadow tests and the visible fraction of a light
- Soft lighting from an area light
"""

import numpy as np
import pytest
import taichi as ti


def _samples(light_id, count):
    """Positions of the first ``count`` samples of a light, from a kernel."""
    from prism.lights.light import light_sample

    result = ti.Vector.field(3, dtype=ti.f32, shape=count)

    @ti.kernel
    def test_kernel():
        for k in range(count):
            result[k] = light_sample(light_id, k)

    test_kernel()
    return result.to_numpy()


class TestLightTypes:
    """Tests for the host-side light dataclasses."""

    def test_point_light_has_one_sample(self):
        from prism.lights.light import PointLight

        light = PointLight(position=(0, 0, 0), intensity=(1, 1, 1))
        assert light.samples == 1

    def test_area_light_cells(self):
        from prism.lights.light import AreaLight

        light = AreaLight(corner=(0, 0, 0), full_uvec=(2, 0, 0), usteps=4, full_vvec=(0, 0, 1), vsteps=2)
        np.testing.assert_allclose(light.uvec, (0.5, 0, 0))
        np.testing.assert_allclose(light.vvec, (0, 0, 0.5))
        assert light.samples == 8
        np.testing.assert_allclose(light.position, (1, 0, 0.5))

    @pytest.mark.parametrize(
        "u, v, expected",
        [
            (0, 0, (0.25, 0, 0.25)),
            (1, 0, (0.75, 0, 0.25)),
            (0, 1, (0.25, 0, 0.75)),
            (2, 0, (1.25, 0, 0.25)),
            (3, 1, (1.75, 0, 0.75)),
        ],
    )
    def test_point_on_light_uses_cell_centers(self, u, v, expected):
        from prism.lights.light import AreaLight

        light = AreaLight(corner=(0, 0, 0), full_uvec=(2, 0, 0), usteps=4, full_vvec=(0, 0, 1), vsteps=2)
        np.testing.assert_allclose(light.point_on_light(u, v), expected)

    def test_area_light_needs_cells(self):
        from prism.core.errors import SceneConfigError
        from prism.lights.light import AreaLight

        with pytest.raises(SceneConfigError):
            AreaLight(corner=(0, 0, 0), full_uvec=(1, 0, 0), usteps=0, full_vvec=(0, 1, 0), vsteps=1)


class TestLightRegistry:
    """Tests for add_light and the kernel-side sample positions."""

    def test_negative_intensity_raises(self):
        from prism.core.errors import SceneConfigError
        from prism.lights.light import PointLight, add_light, get_light_count

        with pytest.raises(SceneConfigError):
            add_light(PointLight(position=(0, 0, 0), intensity=(1, -1, 1)))
        assert get_light_count() == 0

    def test_point_light_sample_is_its_position(self):
        from prism.lights.light import PointLight, add_light

        lid = add_light(PointLight(position=(-10, 10, -10)))
        np.testing.assert_allclose(_samples(lid, 1)[0], (-10, 10, -10))

    def test_area_light_samples_enumerate_rows(self):
        from prism.lights.light import AreaLight, add_light

        light = AreaLight(corner=(0, 0, 0), full_uvec=(2, 0, 0), usteps=4, full_vvec=(0, 0, 1), vsteps=2)
        lid = add_light(light)
        samples = _samples(lid, 8)
        expected = [light.point_on_light(k % 4, k // 4) for k in range(8)]
        np.testing.assert_allclose(samples, expected, atol=1e-6)

    def test_jittered_samples_stay_inside_their_cells(self):
        from prism.lights.light import AreaLight, add_light, set_area_light_jitter

        light = AreaLight(corner=(0, 0, 0), full_uvec=(2, 0, 0), usteps=4, full_vvec=(0, 0, 1), vsteps=2)
        lid = add_light(light)
        set_area_light_jitter(True)
        samples = _samples(lid, 8)
        for k, s in enumerate(samples):
            u, v = k % 4, k // 4
            assert u * 0.5 <= s[0] <= (u + 1) * 0.5
            assert v * 0.5 <= s[2] <= (v + 1) * 0.5
            assert s[1] == pytest.approx(0.0)


class TestShadows:
    """Tests for is_shadowed and light_intensity_at on the default world."""

    @pytest.mark.parametrize(
        "point, expected",
        [
            ((0, 10, 0), False),
            ((10, -10, 10), True),
            ((-20, 20, -20), False),
            ((-2, 2, -2), False),
        ],
    )
    def test_is_shadowed(self, default_world, point, expected):
        world, _, _ = default_world
        assert world.is_shadowed((-10, 10, -10), point) is expected

    @pytest.mark.parametrize(
        "point, expected",
        [
            ((0, 1.0001, 0), 1.0),
            ((-1.0001, 0, 0), 1.0),
            ((0, 0, -1.0001), 1.0),
            ((0, 0, 1.0001), 0.0),
            ((1.0001, 0, 0), 0.0),
            ((0, -1.0001, 0), 0.0),
            ((0, 0, 0), 0.0),
        ],
    )
    def test_point_light_intensity(self, default_world, point, expected):
        world, _, _ = default_world
        assert world.light_intensity_at(0, point) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "point, expected",
        [
            ((0, 0, 2), 0.0),
            ((1, -1, 2), 0.25),
            ((1.5, 0, 2), 0.5),
            ((1.25, 1.25, 3), 0.75),
            ((0, 0, -2), 1.0),
        ],
    )
    def test_area_light_intensity(self, default_world, point, expected):
        world, _, _ = default_world
        lid = world.add_area_light(
            corner=(-0.5, -0.5, -5), full_uvec=(1, 0, 0), usteps=2, full_vvec=(0, 1, 0), vsteps=2
        )
        assert world.light_intensity_at(lid, point) == pytest.approx(expected)

    def test_non_shadow_casting_material_lets_light_through(self):
        from prism.core.transforms import translation
        from prism.materials import Material
        from prism.scene.world import World

        world = World()
        world.add_point_light((0, 10, 0))
        clear_glass = world.add_material(Material(transparency=1.0, casts_shadow=False))
        world.add_sphere(material=clear_glass)
        assert not world.is_shadowed((0, 10, 0), (0, -10, 0))

        world.add_cube(transform=translation(0, -5, 0))
        assert world.is_shadowed((0, 10, 0), (0, -10, 0))

    def test_unknown_light_raises(self, default_world):
        from prism.core.errors import SceneConfigError

        world, _, _ = default_world
        with pytest.raises(SceneConfigError):
            world.light_intensity_at(3, (0, 0, 0))


class TestAreaLighting:
    """Tests for Phong lighting averaged over area-light samples."""

    @pytest.mark.parametrize(
        "point, expected",
        [
            ((0, 0, -1), 0.9965),
            ((0, 0.7071, -0.7071), 0.6232),
        ],
    )
    def test_lighting_samples_the_area_light(self, point, expected):
        from prism.materials import Material
        from prism.scene.world import World

        world = World()
        lid = world.add_area_light(
            corner=(-0.5, -0.5, -5), full_uvec=(1, 0, 0), usteps=2, full_vvec=(0, 1, 0), vsteps=2
        )
        mid = world.add_material(Material(ambient=0.1, diffuse=0.9, specular=0.0, color=(1, 1, 1)))
        eye = np.array([0.0, 0.0, -5.0])
        p = np.array(point, dtype=np.float64)
        eyev = (eye - p) / np.linalg.norm(eye - p)
        color = world.lighting(mid, None, lid, p, eyev, p, intensity=1.0)
        assert color == pytest.approx((expected, expected, expected), abs=1e-3)
